import textwrap

from convoy import events as ev
from convoy.runner import Runner

SAMPLE_TESTS = textwrap.dedent("""
    def helper():
        return 1

    def test_context_assertions(test):
        test.equal(helper(), 1, "helper returns one")
        test.ok(True)
        test.raises(ZeroDivisionError, lambda: 1 / 0)

    def test_plain_assert_failure(test):
        assert helper() == 2, "helper is not two"

    def test_unexpected_error(test):
        raise ValueError("bad fixture")

    def test_without_context():
        pass
""")


def run_native(workdir, reporters, *test_files):
    return Runner(
        {"tests": [str(path) for path in test_files], "driver": ["native"], "reporter": ["recorder"]},
        reporters=reporters,
        search_dir=workdir,
    ).run()


def test_assertions_from_python_module(workdir, reporters, recorder):
    test_file = workdir / "sample_test.py"
    test_file.write_text(SAMPLE_TESTS)

    runner = run_native(workdir, reporters, test_file)

    assertions = recorder().events_named(ev.ASSERTION)
    assert [a["success"] for a in assertions] == [True, True, True, False, False, True]
    assert assertions[0]["message"] == "helper returns one"
    assert assertions[3]["message"] == "helper is not two"
    assert "ValueError: bad fixture" in assertions[4]["message"]
    assert all(a["driver"] == "native" for a in assertions)
    assert runner.assertions_passed == 4
    assert runner.assertions_failed == 2
    assert runner.exit_code == 1


def test_unloadable_file_is_a_failed_assertion(workdir, reporters, recorder):
    broken = workdir / "broken_test.py"
    broken.write_text("def test_x(:\n")

    runner = run_native(workdir, reporters, broken)

    assertions = recorder().events_named(ev.ASSERTION)
    assert len(assertions) == 1
    assert "Failed to load test file" in assertions[0]["message"]
    assert runner.runner_status is False


def test_files_run_in_order(workdir, reporters):
    first = workdir / "first_test.py"
    second = workdir / "second_test.py"
    first.write_text("def test_a(test):\n    test.ok(True, 'first')\n")
    second.write_text("def test_b(test):\n    test.ok(True, 'second')\n")

    order = []
    runner = Runner(
        {"tests": [str(second), str(first)], "reporter": ["recorder"]},
        reporters=reporters,
        search_dir=workdir,
    )
    runner.events.on(ev.TEST_STARTED, lambda data: order.append(data["test"]))
    runner.run()

    assert order == [str(second), str(first)]


def test_kill_skips_remaining_tests(workdir, reporters, recorder):
    first = workdir / "first_test.py"
    second = workdir / "second_test.py"
    first.write_text("def test_a(test):\n    test.ok(True)\n")
    second.write_text("def test_b(test):\n    test.ok(True)\n")

    runner = Runner(
        {"tests": [str(first), str(second)], "reporter": ["recorder"]},
        reporters=reporters,
        search_dir=workdir,
    )
    runner.events.on(ev.TEST_FINISHED, lambda data: runner.driver_events.emit(ev.KILL_ALL))
    runner.run()

    assert len(recorder().events_named(ev.ASSERTION)) == 1
