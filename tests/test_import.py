"""Test that all public exports are importable."""

import pytest


def test_import_main():
    """Test importing main module."""
    import snobify
    assert hasattr(snobify, 'compute_path')
    assert hasattr(snobify, '__version__')


def test_all_exports_resolve():
    """Every name in __all__ is an attribute of the package."""
    import snobify
    missing = [name for name in snobify.__all__ if not hasattr(snobify, name)]
    assert missing == []


def test_import_errors():
    """Test importing the error taxonomy."""
    from snobify import (
        SnobifyError,
        DataNotFoundError,
        SchemaError,
        ComputeFailedError,
        ComputeTimeoutError,
        CacheReadError,
        CacheWriteError,
    )
    for cls in (DataNotFoundError, SchemaError, ComputeFailedError, CacheReadError, CacheWriteError):
        assert issubclass(cls, SnobifyError)
    assert issubclass(ComputeTimeoutError, ComputeFailedError)


def test_import_features():
    """Test importing feature functions."""
    from snobify import (
        top_unique_genres,
        discovery_trend,
        activity_trend,
        rare_tracks,
        build_taste_vector,
        rate,
    )
    assert all([
        top_unique_genres,
        discovery_trend,
        activity_trend,
        rare_tracks,
        build_taste_vector,
        rate,
    ])


def test_import_cli():
    """Test importing the CLI entry point."""
    from snobify.cli import main
    assert callable(main)
    with pytest.raises(SystemExit):
        main(["--help"])
