"""Smoke test: verify the learning_methods package is importable."""

import learning_methods


def test_package_version() -> None:
    """Package must declare a __version__ string."""
    assert isinstance(learning_methods.__version__, str)
    assert learning_methods.__version__ == "0.0.1"
