# tests/test_executor.py
from luaubuild.core.graph import StepState, make
from luaubuild.core.graph.executor import collect_closure

from tests.conftest import WRITE_FILE, py_tool

FAIL = "import sys; sys.stderr.write('boom\\n'); sys.exit(1)"
# argv[1] must exist, argv[2] is written
CHECK_THEN_WRITE = (
    "import pathlib, sys; pathlib.Path(sys.argv[1]).exists() or sys.exit(1); "
    "pathlib.Path(sys.argv[2]).write_text('ok')"
)


def _writer(b, path, name):
    s = b.add_system_command(py_tool(WRITE_FILE, path, "ok"))
    s.set_name(name)
    return s


def test_dependent_of_failed_step_never_runs(build, tmp_path):
    failing = build.add_system_command(py_tool(FAIL))
    failing.set_name("compile")
    marker = tmp_path / "linked"
    dependent = _writer(build, marker, "link")
    dependent.depend_on(failing)
    entry = build.step("all", "everything")
    entry.depend_on(dependent)

    summary = make(build, [entry], max_workers=2)

    assert not summary.ok
    assert not marker.exists()
    assert failing.state is StepState.FAILURE
    assert dependent.state is StepState.DEPENDENCY_FAILURE
    assert entry.state is StepState.DEPENDENCY_FAILURE
    assert [name for name, _ in summary.failed] == ["compile"]
    assert sorted(summary.skipped) == ["all", "link"]


def test_independent_branch_still_runs(build, tmp_path):
    failing = build.add_system_command(py_tool(FAIL))
    ok_marker = tmp_path / "independent"
    independent = _writer(build, ok_marker, "independent")
    entry = build.step("all", "everything")
    entry.depend_on(failing)
    entry.depend_on(independent)

    summary = make(build, [entry], max_workers=4)

    assert not summary.ok
    assert ok_marker.exists()
    assert independent.state is StepState.SUCCESS
    assert "independent" in summary.succeeded


def test_steps_run_after_their_predecessors(build, tmp_path):
    first = tmp_path / "first"
    second = tmp_path / "second"
    a = _writer(build, first, "a")
    b = build.add_system_command(py_tool(CHECK_THEN_WRITE, first, second))
    b.depend_on(a)

    summary = make(build, [b], max_workers=8)

    assert summary.ok
    assert second.read_text() == "ok"
    assert summary.succeeded == ["a", b.name]


def test_only_requested_closure_runs(build, tmp_path):
    wanted = _writer(build, tmp_path / "wanted", "wanted")
    _writer(build, tmp_path / "unwanted", "unwanted")

    summary = make(build, [wanted])

    assert summary.ok
    assert (tmp_path / "wanted").exists()
    assert not (tmp_path / "unwanted").exists()


def test_nothing_requested_runs_nothing(build, tmp_path):
    _writer(build, tmp_path / "x", "x")
    summary = make(build, [])
    assert summary.ok
    assert summary.succeeded == []
    assert not (tmp_path / "x").exists()


def test_collect_closure_orders_dependencies_first(build):
    a = build.add_system_command(py_tool("pass"))
    b = build.add_system_command(py_tool("pass"))
    c = build.add_system_command(py_tool("pass"))
    c.depend_on(b)
    b.depend_on(a)
    c.depend_on(a)

    order = collect_closure([c])
    assert order.index(a) < order.index(b) < order.index(c)
    assert len(order) == 3


def test_second_make_runs_the_closure_again(build, tmp_path):
    log = tmp_path / "runs.log"
    append = "import sys; open(sys.argv[1], 'a').write(sys.argv[2] + '\\n')"
    first = build.add_system_command(py_tool(append, log, "first"))
    first.set_name("first")
    second = build.add_system_command(py_tool(append, log, "second"))
    second.set_name("second")
    second.depend_on(first)

    one = make(build, [second], max_workers=2)
    two = make(build, [second], max_workers=2)

    assert one.ok and two.ok
    assert two.succeeded == ["first", "second"]
    assert second.state is StepState.SUCCESS
    assert log.read_text().splitlines() == ["first", "second", "first", "second"]


def test_second_make_retries_a_previously_failed_step(build, tmp_path):
    gate = tmp_path / "gate"
    out = tmp_path / "out"
    s = build.add_system_command(py_tool(CHECK_THEN_WRITE, gate, out))
    s.set_name("gated")

    assert not make(build, [s]).ok
    assert s.state is StepState.FAILURE

    gate.write_text("")
    summary = make(build, [s])

    assert summary.ok
    assert s.state is StepState.SUCCESS
    assert s.error is None
    assert out.read_text() == "ok"
