"""
Tests for settings loading
"""
from vectorius.settings import (
    auth_cookie_name,
    is_production,
    load_settings,
    model_config,
    normalize_database_url,
    verify_settings,
)


class TestLoadSettings:
    """Tests for merging defaults, YAML and environment"""

    def test_defaults(self, tmp_path):
        """Test defaults apply when nothing is configured"""
        settings = load_settings(force=True, config_file=str(tmp_path / "missing.yaml"), environ={})

        assert settings["attachments"]["retention_days"] == 7
        assert settings["app"]["environment"] == "development"
        assert model_config(settings) is None

    def test_yaml_and_environment(self, tmp_path):
        """Test the YAML file tunes values and the environment supplies secrets"""
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("attachments:\n  retention_days: 14\nlimits:\n  default: ['10 per minute']\n")

        settings = load_settings(
            force=True,
            config_file=str(config_file),
            environ={"SUPABASE_URL": "https://abcdefgh.supabase.co", "DATABASE_URL": "postgres://u:p@db/vectorius"},
        )

        assert settings["attachments"]["retention_days"] == 14
        assert settings["attachments"]["batch_size"] == 100
        assert settings["limits"]["default"] == ["10 per minute"]
        assert settings["provider"]["url"] == "https://abcdefgh.supabase.co"
        assert settings["database"]["url"] == "postgresql://u:p@db/vectorius"

    def test_platform_production_overrides_app_env(self, tmp_path):
        """Test VERCEL_ENV=production counts even when APP_ENV names another environment"""
        settings = load_settings(
            force=True,
            config_file=str(tmp_path / "missing.yaml"),
            environ={"APP_ENV": "staging", "VERCEL_ENV": "production"},
        )

        assert settings["app"]["environment"] == "staging"
        assert settings["app"]["platform_environment"] == "production"
        assert is_production(settings)

    def test_app_env_production(self, tmp_path):
        """Test APP_ENV=production alone is enough"""
        settings = load_settings(force=True, config_file=str(tmp_path / "missing.yaml"), environ={"APP_ENV": "Production"})

        assert is_production(settings)

    def test_preview_is_not_production(self, tmp_path):
        """Test non-production values on both variables leave persona testing on"""
        settings = load_settings(
            force=True,
            config_file=str(tmp_path / "missing.yaml"),
            environ={"APP_ENV": "staging", "VERCEL_ENV": "preview"},
        )

        assert not is_production(settings)

    def test_vercel_environment(self, tmp_path):
        """Test the hosting platform's environment name is honoured"""
        settings = load_settings(force=True, config_file=str(tmp_path / "missing.yaml"), environ={"VERCEL_ENV": "production"})

        assert is_production(settings)

    def test_cached(self, tmp_path):
        """Test settings are cached until forced"""
        first = load_settings(force=True, config_file=str(tmp_path / "missing.yaml"), environ={})

        assert load_settings() is first


class TestHelpers:
    """Tests for derived settings"""

    def test_auth_cookie_name(self, settings):
        """Test the cookie name is derived from the project ref"""
        assert auth_cookie_name(settings) == "sb-abcdefgh-auth-token"

        settings["provider"]["url"] = ""
        assert auth_cookie_name(settings) is None

    def test_normalize_database_url(self):
        """Test only the postgres:// scheme is rewritten"""
        assert normalize_database_url("postgres://db/x") == "postgresql://db/x"
        assert normalize_database_url("sqlite://") == "sqlite://"

    def test_verify_settings(self, settings):
        """Test missing privileged credentials are reported"""
        settings["provider"]["service_role_key"] = ""

        success, errors = verify_settings(settings, "provider")

        assert not success
        assert errors == [{"path": "provider/service_role_key", "error": "SUPABASE_SERVICE_ROLE_KEY is not set."}]
        assert verify_settings(settings, "database") == (True, [])
