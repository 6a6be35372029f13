from vault_ingest.extraction.confidence import ConfidenceAggregator
from vault_ingest.extraction.entity_extractor import EntityExtractor
from vault_ingest.extraction.models import ExtractedEntities, ExtractedField

__all__ = ["ConfidenceAggregator", "EntityExtractor", "ExtractedEntities", "ExtractedField"]
