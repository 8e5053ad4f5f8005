"""Tests for environment-driven configuration."""

from config import Config, create_sample_env


class TestConfig:

    def test_defaults(self, clean_env):
        config = Config()

        assert config.market_provider == 'live-search'
        assert config.vision_model == 'gpt-4o'
        assert config.vision_base_url is None
        assert config.min_sold_samples == 3
        assert config.max_images == 5
        assert not config.has_live_search
        assert not config.has_vision

    def test_vision_key_falls_back_to_openai_key(self, clean_env):
        clean_env.setenv('OPENAI_API_KEY', 'sk-test')

        config = Config()

        assert config.vision_api_key == 'sk-test'
        assert config.has_vision

    def test_placeholder_keys_are_not_credentials(self, clean_env):
        clean_env.setenv('OPENAI_API_KEY', 'your_openai_api_key_here')
        clean_env.setenv('TAVILY_API_KEY', 'tvly-test')

        config = Config()

        assert not config.has_live_search
        assert not config.has_vision

    def test_validate_live_search(self, config):
        assert config.has_live_search
        assert config.validate()

    def test_validate_reports_missing_keys(self, clean_env, capsys):
        assert not Config().validate()
        assert 'tavily_api_key' in capsys.readouterr().out

    def test_static_estimate_only_needs_vision(self, clean_env):
        clean_env.setenv('OPENAI_API_KEY', 'sk-test')
        clean_env.setenv('MARKET_PROVIDER', 'Static-Estimate')

        config = Config()

        assert config.market_provider == 'static-estimate'
        assert config.validate()

    def test_unknown_provider_is_invalid(self, config):
        config.market_provider = 'crystal-ball'
        assert not config.validate()

    def test_to_dict_excludes_secrets(self, config):
        data = config.to_dict()

        assert 'openai_api_key' not in data
        assert 'sk-test' not in data.values()
        assert data['live_search_available'] is True


def test_create_sample_env(tmp_path):
    path = tmp_path / '.env'

    assert create_sample_env(str(path))
    assert 'MARKET_PROVIDER=live-search' in path.read_text()
    assert not create_sample_env(str(path))
