"""Tests for cliqueflow package import and basic smoke tests."""

import importlib
import subprocess
import sys

import pytest


class TestImport:
    """Test that cliqueflow can be imported."""

    def test_import_cliqueflow(self) -> None:
        """Test importing the cliqueflow package."""
        import cliqueflow

        assert hasattr(cliqueflow, "__version__")

    def test_version_exists(self) -> None:
        """Test that __version__ is defined."""
        import cliqueflow

        assert isinstance(cliqueflow.__version__, str)
        assert len(cliqueflow.__version__) > 0

    def test_reimport(self) -> None:
        """Test that cliqueflow can be reimported."""
        import cliqueflow

        importlib.reload(cliqueflow)
        assert cliqueflow.__version__

    def test_public_api(self) -> None:
        """Everything in __all__ is importable from the top level."""
        import cliqueflow

        for name in cliqueflow.__all__:
            assert hasattr(cliqueflow, name), name

    def test_errors_share_a_base(self) -> None:
        from cliqueflow import (
            ConstructionError,
            InferenceError,
            InvalidMessageOrderError,
            ZeroProbabilityError,
        )

        for error in (ConstructionError, InvalidMessageOrderError,
                      ZeroProbabilityError):
            assert issubclass(error, InferenceError)


class TestCLISmoke:
    """CLI smoke tests for the cliqueflow package."""

    @pytest.mark.skipif(
        subprocess.run(
            [sys.executable, "-m", "pip", "show", "cliqueflow"],
            capture_output=True,
        ).returncode != 0,
        reason="cliqueflow not installed via pip (run 'pip install -e .')",
    )
    def test_pip_show(self) -> None:
        """Test that pip show cliqueflow succeeds."""
        result = subprocess.run(
            [sys.executable, "-m", "pip", "show", "cliqueflow"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0
        assert "cliqueflow" in result.stdout.lower()

    def test_python_c_import(self) -> None:
        """Test importing cliqueflow via python -c."""
        result = subprocess.run(
            [sys.executable, "-c",
             "import cliqueflow; print(cliqueflow.__version__)"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0
        version = result.stdout.strip()
        # Basic semver check: at least major.minor.patch
        assert len(version.split(".")) >= 3, f"Version {version!r} is not semver-like"
