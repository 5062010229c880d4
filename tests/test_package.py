"""
Tests for the package-level API.
"""

import agriforecast
from agriforecast.config.forecast_config import EnsembleConfig


def test_package_info():
    info = agriforecast.get_package_info()

    assert info['name'] == "agriforecast"
    assert info['version'] == agriforecast.__version__
    assert info['default_horizon_days'] == EnsembleConfig().default_horizon


def test_public_api_exports():
    for name in agriforecast.__all__:
        assert hasattr(agriforecast, name)
