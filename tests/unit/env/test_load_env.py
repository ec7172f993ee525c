import pytest

from canaryscale.env import Env, TimeParser, load_env
from canaryscale.release.exceptions import InvalidStageSpecError
from canaryscale.release.models import ReleaseConfig


@pytest.fixture
def clean_environment(monkeypatch, tmp_path):
    for name in Env.types_map():
        monkeypatch.delenv(name, raising=False)

    monkeypatch.chdir(tmp_path)


class TestLoadEnv:
    """Tests for loading CANARY_* settings."""

    def test_defaults_match_lab(self, clean_environment):
        env = load_env(Env)

        assert env.CANARY_NAMESPACE == "lab"
        assert env.CANARY_STAGES == "10,25,50,100"
        assert env.CANARY_TOTAL_REPLICAS == 10
        assert env.CANARY_RUN_LEASE_ENABLED is True

    def test_environment_overrides_defaults(self, clean_environment, monkeypatch):
        monkeypatch.setenv("CANARY_TOTAL_REPLICAS", "4")
        monkeypatch.setenv("CANARY_LOAD_GENERATOR_ENABLED", "false")

        env = load_env(Env)

        assert env.CANARY_TOTAL_REPLICAS == 4
        assert env.CANARY_LOAD_GENERATOR_ENABLED is False

    def test_env_file_overrides_environment(self, clean_environment, monkeypatch, tmp_path):
        monkeypatch.setenv("CANARY_NAMESPACE", "staging")

        env_file = tmp_path / "release.env"
        env_file.write_text(
            "CANARY_NAMESPACE=production\n"
            "CANARY_STAGES=5,50,100\n"
            "UNRELATED=ignored\n"
        )

        env = load_env(Env, str(env_file))

        assert env.CANARY_NAMESPACE == "production"
        assert env.CANARY_STAGES == "5,50,100"

    def test_non_json_log_path_is_rejected(self, clean_environment, monkeypatch):
        monkeypatch.setenv("CANARY_LOG_PATH", "run.log")

        with pytest.raises(ValueError):
            load_env(Env)


class TestReleaseConfigFromEnv:
    """Tests for building the immutable release config."""

    def test_durations_are_parsed(self, clean_environment, monkeypatch):
        monkeypatch.setenv("CANARY_SOAK_DURATION", "2m")
        monkeypatch.setenv("CANARY_LOAD_GENERATOR_INTERVAL", "0.5s")

        config = ReleaseConfig.from_env(load_env(Env))

        assert config.soak_duration == 120
        assert config.load_generator_interval == 0.5
        assert config.convergence_timeout == 300
        assert config.stable.image == "nginx:1.21"
        assert config.candidate.image == "nginx:1.22"
        assert config.release_name == "lab/webapp-stable->webapp-canary"

    def test_invalid_stages_are_rejected(self, clean_environment, monkeypatch):
        monkeypatch.setenv("CANARY_STAGES", "10,50")

        with pytest.raises(InvalidStageSpecError):
            ReleaseConfig.from_env(load_env(Env))

    def test_zero_replicas_are_rejected(self, clean_environment, monkeypatch):
        monkeypatch.setenv("CANARY_TOTAL_REPLICAS", "0")

        with pytest.raises(ValueError):
            ReleaseConfig.from_env(load_env(Env))

    def test_unparseable_soak_is_rejected(self, clean_environment, monkeypatch):
        monkeypatch.setenv("CANARY_SOAK_DURATION", "abc")

        with pytest.raises(ValueError):
            ReleaseConfig.from_env(load_env(Env))


class TestTimeParser:

    @pytest.mark.parametrize(
        "value,seconds",
        [
            ("300s", 300),
            ("1m", 60),
            ("1m30s", 90),
            ("2h", 7200),
            ("0.5s", 0.5),
            ("45", 45),
            (12, 12),
        ],
    )
    def test_parse(self, value, seconds):
        assert TimeParser().parse(value) == seconds

    @pytest.mark.parametrize("value", ["abc", "5 minutes", "", "10x"])
    def test_unparseable_durations_are_rejected(self, value):
        with pytest.raises(ValueError):
            TimeParser().parse(value)
