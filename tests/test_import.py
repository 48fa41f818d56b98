import importlib


def test_import_package():
    """Basic smoke test: can import the package and check version."""
    pkg = importlib.import_module("lucc_results")

    assert hasattr(pkg, "__version__")
    assert pkg.__version__.startswith("0.")
    assert hasattr(pkg, "__author__")


def test_import_functions():
    """Check that key functions are exposed at top-level."""
    import lucc_results as lr

    expected_exports = {
        "extract_frequency",
        "compute_measures",
        "merge_patch",
        "save_raster_result",
        "write_geotiff",
        "split_layers",
        "ValidationError",
    }

    for name in expected_exports:
        assert hasattr(lr, name), f"Expected '{name}' to be re-exported"

    assert expected_exports.issubset(set(lr.__all__))
    assert "__author__" in lr.__all__
