"""Configuration for integration tests."""

import pytest


def pytest_configure(config):
    """Register the integration markers."""
    config.addinivalue_line(
        "markers", "integration: exercises the assembled application end to end"
    )
    config.addinivalue_line(
        "markers", "ci_safe: integration test with no external services, always run"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless ``--integration`` is given.

    Tests marked ``ci_safe`` only touch the local filesystem and run anyway.
    """
    if config.getoption("--integration", default=False):
        return
    skip_integration = pytest.mark.skip(reason="Need --integration option to run")
    for item in items:
        if "integration" in item.keywords and "ci_safe" not in item.keywords:
            item.add_marker(skip_integration)


def pytest_addoption(parser):
    """Add the ``--integration`` option."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests",
    )
