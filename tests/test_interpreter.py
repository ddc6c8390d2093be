import builtins
import pytest

from quotaforth.atoms import Number, FileAccessFailure, UnresolvedToken, TypeMismatch
from quotaforth.interpreter import Interpreter, main


def write(path, text):
    path.write_text(text, encoding='utf-8')
    return str(path)


def test_load_file(interpreter, tmp_path):
    interpreter.load_file(write(tmp_path / 'prog.qf', ': square dup * ;\n5 square\n'))
    assert interpreter.stack == [Number(25)]


def test_include_relative_to_including_file(interpreter, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path.parent)
    (tmp_path / 'lib').mkdir()
    write(tmp_path / 'lib' / 'math.qf', ': triple ( a -- 3a ) 3 * ;')
    write(tmp_path / 'lib' / 'all.qf', ':include "math.qf"\n: nine 3 triple ;')
    main_file = write(tmp_path / 'main.qf', ':include "lib/all.qf"\n4 triple nine')
    interpreter.load_file(main_file)
    assert interpreter.stack == [Number(12), Number(9)]


def test_include_missing_file(interpreter, tmp_path):
    main_file = write(tmp_path / 'main.qf', ':include "nowhere.qf"')
    with pytest.raises(FileAccessFailure):
        interpreter.load_file(main_file)


def test_circular_include(interpreter, tmp_path):
    write(tmp_path / 'a.qf', ':include "b.qf"')
    write(tmp_path / 'b.qf', ':include "a.qf"')
    with pytest.raises(FileAccessFailure) as excinfo:
        interpreter.load_file(str(tmp_path / 'a.qf'))
    assert 'circular' in excinfo.value.explanation


def test_error_in_included_file_names_it(interpreter, tmp_path):
    lib = write(tmp_path / 'lib.qf', '1 "a" +')
    main_file = write(tmp_path / 'main.qf', ':include "lib.qf"')
    with pytest.raises(TypeMismatch) as excinfo:
        interpreter.load_file(main_file)
    assert excinfo.value.source == lib
    assert interpreter.runtime.source is None


def test_same_file_can_be_included_twice(interpreter, tmp_path):
    write(tmp_path / 'one.qf', '1')
    interpreter.load_file(write(tmp_path / 'main.qf', ':include "one.qf" :include "one.qf"'))
    assert interpreter.stack == [Number(1), Number(1)]


def test_init_file(interpreter, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert not interpreter.load_init()
    write(tmp_path / Interpreter.INIT_FILENAME, ': answer 42 ;')
    assert interpreter.load_init()
    interpreter.execute('answer')
    assert interpreter.stack == [Number(42)]


def test_error_report(interpreter):
    with pytest.raises(UnresolvedToken) as excinfo:
        interpreter.execute('nope', 'unit.qf')
    report = excinfo.value.report()
    assert 'UnresolvedToken' in report
    assert 'source: unit.qf' in report
    assert 'component: Interpreter' in report
    assert 'nope' in report


def feed(monkeypatch, lines):
    remaining = iter(lines)
    def fake_input(prompt=''):
        try:
            return next(remaining)
        except StopIteration:
            raise EOFError
    monkeypatch.setattr(builtins, 'input', fake_input)


def test_repl_keeps_state_between_lines(interpreter, monkeypatch, output):
    feed(monkeypatch, [': twice 2 * ;', '21 twice', 'frobnicate', '1 +'])
    interpreter.loop()
    assert interpreter.stack == [Number(43)]
    text = output()
    assert "'frobnicate' is not a defined word" in text
    assert 'See you soon' in text


def test_repl_bye(interpreter, monkeypatch):
    feed(monkeypatch, ['1', 'bye', '2'])
    interpreter.showstack = False
    interpreter.loop()
    assert interpreter.stack == [Number(1)]


def test_main_runs_file(tmp_path, output):
    assert main([write(tmp_path / 'prog.qf', '6 7 *'), '--no-init']) == 0
    assert '42' in output()


def test_main_reports_errors(tmp_path, capsys):
    path = write(tmp_path / 'bad.qf', '1 "never closed')
    assert main([path, '--no-init']) == 1
    err = capsys.readouterr().err
    assert path in err
    assert 'UnterminatedStringLiteral' in err
    assert 'component: Tokenizer' in err


def test_main_dumps_tokens(tmp_path, output):
    assert main([write(tmp_path / 'prog.qf', ': one 1 ; one'), '--no-init', '--tokens']) == 0
    text = output()
    assert 'definition' in text and 'terminator' in text


def test_main_loads_init_file(tmp_path, monkeypatch, output):
    monkeypatch.chdir(tmp_path)
    write(tmp_path / 'init.qf', ': seven 7 ;')
    assert main([write(tmp_path / 'prog.qf', 'seven seven +')]) == 0
    assert '14' in output()


def test_main_explicit_init_must_exist(tmp_path):
    prog = write(tmp_path / 'prog.qf', '1')
    assert main([prog, '--init', str(tmp_path / 'missing.qf')]) == 1


def test_main_without_prelude(tmp_path):
    assert main([write(tmp_path / 'prog.qf', '1 dup'), '--no-init', '--no-prelude']) == 1


def test_main_bye_stops_file(tmp_path, output):
    assert main([write(tmp_path / 'prog.qf', '"before" . bye "after" .'), '--no-init']) == 0
    text = output()
    assert 'before' in text and 'after' not in text


def test_main_interactive(monkeypatch, tmp_path, output):
    monkeypatch.chdir(tmp_path)
    feed(monkeypatch, ['1 2 + .'])
    assert main(['--no-color']) == 0
    assert '= 3' in output()


@pytest.mark.parametrize('value', ['0', '-1', 'many'])
def test_main_rejects_bad_max_depth(tmp_path, capsys, value):
    with pytest.raises(SystemExit) as excinfo:
        main([write(tmp_path / 'prog.qf', '1 2 +'), '--no-init', '--max-depth', value])
    assert excinfo.value.code == 2
    assert '--max-depth' in capsys.readouterr().err


def test_main_accepts_small_max_depth(tmp_path, output):
    assert main([write(tmp_path / 'prog.qf', '1 2 +'), '--no-init', '--max-depth', '1']) == 0
    assert '3' in output()


def test_main_lists_words_after_running(tmp_path, output):
    assert main([write(tmp_path / 'prog.qf', ': square dup * ; 4 square'), '--no-init']) == 0
    text = output()
    assert 'size: 1' in text
    assert ': square dup * ;' in text
    assert text.index('size: 1') < text.index('WORDS')
