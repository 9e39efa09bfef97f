"""
Test EngineConfig validation and environment resolution.
"""

import pytest

from pyols._config import EngineConfig, DEFAULT_CONFIG


class TestEngineConfig:

    def test_defaults(self):
        config = EngineConfig()
        assert config.singular_tol == 1e-10
        assert config.alpha == 0.05
        assert config.leverage == 'exact'
        assert config.influence_threshold == '4/n'
        assert config == DEFAULT_CONFIG

    def test_frozen(self):
        with pytest.raises(AttributeError):
            DEFAULT_CONFIG.alpha = 0.1

    def test_replace(self):
        config = DEFAULT_CONFIG.replace(alpha=0.01)
        assert config.alpha == 0.01
        assert DEFAULT_CONFIG.alpha == 0.05

    @pytest.mark.parametrize("kwargs", [
        {'singular_tol': 0.0},
        {'alpha': 1.0},
        {'alpha': 0.0},
        {'dw_lower': 3.0, 'dw_upper': 2.0},
        {'vif_suspect': 20.0},
        {'leverage': 'approximate'},
        {'influence_threshold': 'four over n'},
        {'influence_threshold': -1.0},
        {'influence_threshold': '-1'},
        {'influence_threshold': '0'},
        {'influence_threshold': 'nan'},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            EngineConfig(**kwargs)

    def test_numeric_threshold_string(self):
        config = EngineConfig(influence_threshold='0.5')
        assert config.influence_threshold == 0.5
        assert config.cooks_threshold(100) == 0.5

    def test_cooks_threshold_default(self):
        assert DEFAULT_CONFIG.cooks_threshold(20) == pytest.approx(0.2)


class TestFromEnv:

    def test_no_env(self, monkeypatch):
        for name in ('PYOLS_SINGULAR_TOL', 'PYOLS_ALPHA', 'PYOLS_LEVERAGE', 'PYOLS_INFLUENCE_THRESHOLD'):
            monkeypatch.delenv(name, raising=False)
        assert EngineConfig.from_env() == EngineConfig()

    def test_env_values(self, monkeypatch):
        monkeypatch.setenv('PYOLS_SINGULAR_TOL', '1e-12')
        monkeypatch.setenv('PYOLS_LEVERAGE', 'Uniform')
        monkeypatch.setenv('PYOLS_INFLUENCE_THRESHOLD', '1.0')
        config = EngineConfig.from_env()
        assert config.singular_tol == 1e-12
        assert config.leverage == 'uniform'
        assert config.influence_threshold == 1.0

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv('PYOLS_ALPHA', '0.1')
        assert EngineConfig.from_env(alpha=0.01).alpha == 0.01

    def test_bad_env_value(self, monkeypatch):
        monkeypatch.setenv('PYOLS_ALPHA', 'lots')
        with pytest.raises(ValueError, match='PYOLS_ALPHA'):
            EngineConfig.from_env()
