import pytest
import yaml

from conftest import PARIS
from geolocator.config import DEFAULT_CONFIG, load_config, save_config
from geolocator.main import format_result, main


@pytest.fixture
def workspace(tmp_path, sample_lines):
    table = tmp_path / "table.tsv"
    table.write_text("\n".join(sample_lines) + "\n", encoding="utf-8")

    queries = tmp_path / "queries.tsv"
    queries.write_text("q1\teiffel louvre\nq2\tnowhere\n\nyankees big\n", encoding="utf-8")

    config = tmp_path / "config.yaml"
    config.write_text(yaml.safe_dump({"logging": {"level": "WARNING"}}), encoding="utf-8")

    return tmp_path


def run(workspace, *extra):
    argv = [
        "--config", str(workspace / "config.yaml"),
        "--table", str(workspace / "table.tsv"),
        "--codec", "text",
        "--queries", str(workspace / "queries.tsv"),
        "--output", str(workspace / "out.tsv"),
    ]
    return main(argv + list(extra))


class TestConfigFile:

    def test_missing_explicit_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "absent.yaml"))

    def test_merges_over_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("scoring:\n  window: 0.5\n", encoding="utf-8")

        config = load_config(str(path))
        assert config["scoring"]["window"] == 0.5
        assert config["scoring"]["max_workers"] == DEFAULT_CONFIG["scoring"]["max_workers"]
        assert config["table"] == DEFAULT_CONFIG["table"]

    def test_rejects_non_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_config(str(path))

    def test_save_and_reload(self, tmp_path):
        config = dict(DEFAULT_CONFIG)
        path = tmp_path / "nested" / "config.yaml"
        save_config(config, str(path))
        assert load_config(str(path)) == DEFAULT_CONFIG


class TestBatch:

    def test_writes_one_line_per_query(self, workspace):
        assert run(workspace) == 0

        lines = (workspace / "out.tsv").read_text(encoding="utf-8").splitlines()
        assert len(lines) == 3

        q1 = lines[0].split("\t")
        assert q1[:4] == ["q1", PARIS, "48.85", "2.35"]
        assert 0.0 < float(q1[4]) <= 1.0

        assert lines[1] == "q2\tN/A"
        # no tab: the line number is the id
        assert lines[2].startswith("4\t")

    def test_unknown_vocabulary_fails(self, workspace):
        (workspace / "queries.tsv").write_text("q1\tnowhere\n", encoding="utf-8")
        assert run(workspace) == 1

    def test_strict_mode_rejects_bad_table(self, workspace):
        with open(workspace / "table.tsv", "a", encoding="utf-8") as f:
            f.write("eiffel\t0.3\tnot-a-cell>0.5\n")
        assert run(workspace) == 0
        assert run(workspace, "--strict") == 1

    def test_invalid_window(self, workspace):
        assert run(workspace, "--window", "-1") == 1

    def test_write_config(self, workspace):
        target = workspace / "effective.yaml"
        assert run(workspace, "--window", "0.5", "--write-config", str(target)) == 0

        written = load_config(str(target))
        assert written["scoring"]["window"] == 0.5
        assert written["table"]["codec"] == "text"

    def test_batch_needs_queries(self, workspace):
        with pytest.raises(SystemExit):
            main(["--config", str(workspace / "config.yaml"), "--table", str(workspace / "table.tsv")])


def test_format_result():
    assert format_result("q9", None) == "q9\tN/A"


class TestEnvironmentDefaults:

    @pytest.fixture
    def paris_queries(self, workspace):
        (workspace / "queries.tsv").write_text("q1\teiffel\nq2\tlouvre\n", encoding="utf-8")
        return workspace

    def run_without_tunables(self, workspace, config_text=None):
        if config_text is not None:
            (workspace / "config.yaml").write_text(config_text, encoding="utf-8")
        code = main([
            "--config", str(workspace / "config.yaml"),
            "--table", str(workspace / "table.tsv"),
            "--queries", str(workspace / "queries.tsv"),
            "--output", str(workspace / "out.tsv"),
        ])
        lines = (workspace / "out.tsv").read_text(encoding="utf-8").splitlines() if code == 0 else []
        return code, [line.split("\t") for line in lines]

    def test_env_overrides_reach_batch_run(self, paris_queries, monkeypatch):
        from geolocator.model.settings import reload_config

        monkeypatch.setenv("GEOLOCATOR_CELLS_CODEC", "text")
        monkeypatch.setenv("GEOLOCATOR_SCORING_CONFIDENCE_WINDOW", "0")
        reload_config()

        code, rows = self.run_without_tunables(paris_queries)
        assert code == 0
        assert rows[0] == ["q1", PARIS, "48.85", "2.35", "0.800000"]

    def test_yaml_value_beats_env(self, paris_queries, monkeypatch):
        from geolocator.model.settings import reload_config

        monkeypatch.setenv("GEOLOCATOR_CELLS_CODEC", "text")
        monkeypatch.setenv("GEOLOCATOR_SCORING_CONFIDENCE_WINDOW", "0")
        reload_config()

        code, rows = self.run_without_tunables(
            paris_queries, "logging:\n  level: WARNING\nscoring:\n  window: 0.3\n"
        )
        assert code == 0
        assert rows[0][4] == "1.000000"

    def test_numeric_codec_without_overrides(self, paris_queries):
        code, rows = self.run_without_tunables(paris_queries)
        assert code == 0
        assert rows[0][1] == "499892120"
        assert rows[0][4] == "1.000000"

    def test_env_strict_loading(self, paris_queries, monkeypatch):
        from geolocator.model.settings import reload_config

        with open(paris_queries / "table.tsv", "a", encoding="utf-8") as f:
            f.write("eiffel\t0.3\tnot-a-cell>0.5\n")
        monkeypatch.setenv("GEOLOCATOR_LOADER_STRICT", "true")
        reload_config()

        code, _ = self.run_without_tunables(paris_queries)
        assert code == 1


@pytest.mark.parametrize("workers", ["0", "-2"])
def test_invalid_worker_count(workspace, workers):
    assert run(workspace, "--workers", workers) == 1
