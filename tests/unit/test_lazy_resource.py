from unittest.mock import MagicMock

from vault_ingest.resources.lazy import LazyResource


class TestLazyResource:
    def test_factory_called_on_first_get_only(self) -> None:
        factory = MagicMock(return_value="engine")
        resource = LazyResource(factory)
        assert not resource.is_initialized
        factory.assert_not_called()

        assert resource.get() == "engine"
        assert resource.get() == "engine"
        factory.assert_called_once()
        assert resource.is_initialized

    def test_release_runs_finalizer_and_allows_rebuild(self) -> None:
        factory = MagicMock(side_effect=["first", "second"])
        finalizer = MagicMock()
        resource = LazyResource(factory, finalizer)

        resource.get()
        resource.release()

        finalizer.assert_called_once_with("first")
        assert not resource.is_initialized
        assert resource.get() == "second"

    def test_release_without_instance_is_noop(self) -> None:
        finalizer = MagicMock()
        LazyResource(MagicMock(), finalizer).release()
        finalizer.assert_not_called()
