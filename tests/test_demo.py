import graphviz
import pytest

from arenagrad.demo import main, run


def test_run_reference_gradients():
    graph, ids = run()
    assert graph.get(ids["L"]).data == -8.0
    assert {label: graph.get(ids[label]).grad for label in "abcfed"} == {
        "a": 6.0, "b": -4.0, "c": -2.0, "f": 4.0, "e": -2.0, "d": -2.0,
    }


def test_run_steps_increase_output():
    _, start = run()
    graph, ids = run(steps=3, learning_rate=0.01)
    # Leaves are updated in place, outputs are recorded again each step
    assert ids["L"] != start["L"]
    assert graph.get(ids["L"]).data > -8.0
    assert graph.get(ids["a"]).data > 2.0
    assert graph.get(ids["L"]).grad == 1.0


def test_main_prints_values(capsys, monkeypatch):
    monkeypatch.delenv("ARENAGRAD_OUTPUT", raising=False)
    assert main([]) == 0
    out = capsys.readouterr().out
    assert "{ a | data 2.0000 | grad 6.0000 }" in out
    assert "{ L | data -8.0000 | grad 1.0000 }" in out
    assert "rendered" not in out


def test_main_renders(capsys, monkeypatch, tmp_path):
    calls = []

    def fake_render(self, filename=None, **kwargs):
        calls.append((self, filename, kwargs))
        return f"{filename}.{self.format}"

    monkeypatch.setattr(graphviz.Digraph, "render", fake_render)
    target = str(tmp_path / "graph")
    assert main(["--render", target, "--format", "png", "--rankdir", "TB"]) == 0

    (dot, filename, kwargs), = calls
    assert filename == target
    assert dot.format == "png"
    assert "rankdir=TB" in dot.source
    assert f"Graph rendered to {target}.png" in capsys.readouterr().out


def test_main_rejects_bad_rankdir():
    with pytest.raises(SystemExit):
        main(["--rankdir", "RL"])


@pytest.mark.parametrize("argv", [
    ["--log-level", "bogus"],
    ["--render", "graph", "--format", "bogus"],
])
def test_main_rejects_bad_choices(argv, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    assert excinfo.value.code == 2
    assert "invalid choice" in capsys.readouterr().err


def test_main_log_level_is_case_insensitive(monkeypatch):
    monkeypatch.delenv("ARENAGRAD_OUTPUT", raising=False)
    assert main(["--log-level", "debug"]) == 0


def test_main_rejects_bad_log_level_from_environment(monkeypatch, capsys):
    monkeypatch.setenv("ARENAGRAD_LOG_LEVEL", "loud")
    with pytest.raises(SystemExit) as excinfo:
        main([])
    assert excinfo.value.code == 2
    assert "LOUD" in capsys.readouterr().err
