import io

import pytest

from rox import Result, Rox, main


def test_run_reports_scan_and_parse_errors_together_and_skips_execution():
    out = io.StringIO()
    result = Rox(out=out).run('print "before";\nvar a = @;\nprint (1;')
    assert result.status == 'error'
    assert result.exit_code == Result.COMPILE_ERROR
    assert result.reports() == [
        "[line 2] Error: Unexpected character '@'.",
        "[line 2] Error at ';': Expect expression.",
        "[line 3] Error at ';': Expect ')' after expression.",
    ]
    assert out.getvalue() == ''


def test_success_result():
    result = Rox(out=io.StringIO()).run('print 1;')
    assert result.status == 'success'
    assert result.exit_code == Result.SUCCESS
    assert result.reports() == []


def test_globals_persist_across_runs():
    out = io.StringIO()
    rox = Rox(out=out)
    rox.run('var a = "kept";')
    rox.run('print a;')
    assert out.getvalue() == 'kept\n'


@pytest.fixture
def script(tmp_path):
    def write(source):
        path = tmp_path / "script.rox"
        path.write_text(source, encoding="utf-8")
        return str(path)
    return write


def test_main_runs_script(script, capsys):
    assert main([script('var a = 1; { var a = 2; print a; } print a;')]) == 0
    captured = capsys.readouterr()
    assert captured.out == '2\n1\n'
    assert captured.err == ''


def test_main_runtime_error_exit_status(script, capsys):
    assert main([script('print "ok";\nprint -"x";')]) == 70
    captured = capsys.readouterr()
    assert captured.out == 'ok\n'
    assert captured.err == "[line 2] Error at '-': Operand must be a number, got \"x\".\n"


def test_main_syntax_error_exit_status(script, capsys):
    assert main([script('print 1')]) == 65
    assert capsys.readouterr().err == "[line 1] Error at end: Expect ';' after value.\n"


def test_main_without_script_prints_usage(capsys):
    assert main([]) == 64
    assert capsys.readouterr().out == 'Usage: rox [script]\n'


def test_main_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "nope.rox")]) == 66
    assert 'cannot read' in capsys.readouterr().err


def test_main_max_call_depth_option(script, capsys):
    path = script('fun down(n) { if (n > 0) down(n - 1); } down(30);')
    assert main(['--max-call-depth', '10', path]) == 70
    assert 'Stack overflow.' in capsys.readouterr().err
    assert main([path]) == 0


def test_deep_nesting_reports_instead_of_crashing():
    result = Rox(out=io.StringIO()).run('print ' + '(' * 2000 + '1' + ')' * 2000 + ';')
    assert result.exit_code == Result.COMPILE_ERROR
    assert result.reports()[0].endswith("Too much nesting.")


def test_main_deep_unary_chain_exit_status(script, capsys):
    assert main([script('print ' + '-' * 2000 + '1;')]) == 65
    assert "Too much nesting." in capsys.readouterr().err
