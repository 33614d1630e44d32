"""Tests for the resolve_lto command-line script."""

import tomllib

from scripts.resolve_lto import build_policy, main

GRAPH = """
[[modules]]
name = "app"
lto = { full = true }

[[modules]]
name = "liba"

[[dependencies]]
from = "app"
to = "liba"
"""


def write_graph(tmp_path, text: str = GRAPH):
    path = tmp_path / "graph.toml"
    path.write_text(text)
    return path


class TestResolveLtoScript:
    """Tests for main()."""

    def test_prints_summary(self, tmp_path, capsys):
        path = write_graph(tmp_path)

        assert main([str(path), "--no-global-thinlto"]) == 0

        out = capsys.readouterr().out
        assert "app: full -> liba{lto-full}" in out
        assert "liba: none" in out
        assert "liba{lto-full}: full (not installed)" in out

    def test_writes_output(self, tmp_path):
        path = write_graph(tmp_path)
        output = tmp_path / "resolved.toml"

        assert main([str(path), "--output", str(output)]) == 0

        data = tomllib.loads(output.read_text())
        assert any(m.get("variant") == "lto-full" for m in data["modules"])

    def test_prints_flags(self, tmp_path, capsys):
        path = write_graph(tmp_path)
        assert main([str(path), "--flags", "--no-global-thinlto"]) == 0
        out = capsys.readouterr().out
        assert "liba{lto-full}:" in out
        assert "cflags: -flto" in out

    def test_missing_input(self, tmp_path):
        assert main([str(tmp_path / "missing.toml")]) == 1

    def test_invalid_graph(self, tmp_path):
        path = write_graph(tmp_path, "[[modules]]\nlto = {}\n")
        assert main([str(path)]) == 1

    def test_non_utf8_file(self, tmp_path):
        path = tmp_path / "graph.toml"
        path.write_bytes(b"\xff\xfe\x00garbage")
        assert main([str(path)]) == 1

    def test_policy_not_a_table(self, tmp_path):
        path = write_graph(tmp_path, 'policy = ["fast"]\n' + GRAPH)
        assert main([str(path)]) == 1

    def test_configuration_error_exit_code(self, tmp_path, capsys):
        path = write_graph(tmp_path, '[[modules]]\nname = "bad"\nlto = { full = true, thin = true }\n')
        assert main([str(path)]) == 1
        assert "bad: error: FullLTO and ThinLTO are mutually exclusive" in capsys.readouterr().out

    def test_kill_switch_flag(self, tmp_path, capsys):
        path = write_graph(tmp_path)
        assert main([str(path), "--disable-lto"]) == 0
        out = capsys.readouterr().out
        assert "lto-full" not in out


class TestBuildPolicy:
    """Tests for policy layering."""

    def test_file_policy_then_flags(self, monkeypatch):
        monkeypatch.setenv("USE_THINLTO_CACHE", "true")

        class Args:
            disable_lto = False
            no_global_thinlto = False
            thinlto_cache = False

        policy = build_policy(Args(), {"global_thinlto": False})

        assert policy.use_thinlto_cache is True
        assert policy.global_thinlto is False

    def test_flags_override_file(self):
        class Args:
            disable_lto = True
            no_global_thinlto = False
            thinlto_cache = False

        policy = build_policy(Args(), {"disable_lto": False})
        assert policy.disable_lto is True
