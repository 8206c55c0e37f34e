from flowts import ErrorSink, Source, output_path, run_cli


def write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_converts_directory_in_place(tmp_path, capsys):
    write(tmp_path / "a.js", "// @flow\nconst a: ?number = null;\n")
    write(tmp_path / "sub" / "b.js", "type B = $Keys<A>\n")
    assert run_cli(["-o", "ts", "--no-color", str(tmp_path)]) == 0
    assert (tmp_path / "a.ts").read_text() == "const a: number | null = null;\n"
    assert (tmp_path / "sub" / "b.ts").read_text() == "type B = keyof A;\n"
    assert "2 converted, 0 failed" in capsys.readouterr().out


def test_node_modules_is_skipped(tmp_path, capsys):
    write(tmp_path / "node_modules" / "dep" / "x.js", "const x = 1;\n")
    write(tmp_path / "y.js", "const y = 1;\n")
    assert run_cli(["-o", "ts", "--no-color", str(tmp_path)]) == 0
    assert not (tmp_path / "node_modules" / "dep" / "x.ts").exists()
    assert (tmp_path / "y.ts").exists()


def test_failure_sets_exit_code(tmp_path, capsys):
    write(tmp_path / "bad.js", "const = 1;\n")
    write(tmp_path / "good.js", "const ok = 1;\n")
    assert run_cli(["-o", "ts", "--no-color", str(tmp_path)]) == 1
    captured = capsys.readouterr()
    assert "1 converted, 1 failed" in captured.out
    assert "error" in captured.err
    assert not (tmp_path / "bad.ts").exists()
    assert (tmp_path / "good.ts").exists()


def test_warnings_are_reported(tmp_path, capsys):
    write(tmp_path / "o.js", "opaque type Id = string;\n")
    assert run_cli(["-o", "ts", "--no-color", str(tmp_path)]) == 0
    assert "opaque type 'Id'" in capsys.readouterr().err


def test_dry_run_prints_instead_of_writing(tmp_path, capsys):
    src = write(tmp_path / "a.js", "type A = {| x: mixed |}\n")
    assert run_cli(["-o", "ts", "--dry", "--no-color", str(src)]) == 0
    captured = capsys.readouterr()
    assert captured.out == "type A = {\n  x: unknown\n};\n"
    assert "1 converted, 0 failed" in captured.err
    assert not (tmp_path / "a.ts").exists()


def test_declaration_files(tmp_path):
    write(tmp_path / "lib.js.flow", "declare export function f(x: string): void;\n")
    assert run_cli(["-o", "d.ts", "--no-color", str(tmp_path)]) == 0
    assert (tmp_path / "lib.d.ts").read_text() == "export declare function f(x: string): void;\n"


def test_bad_mode(capsys):
    assert run_cli(["-o", "flow", "x.js"]) == 2
    assert "output mode" in capsys.readouterr().out


def test_missing_mode_and_paths(capsys):
    assert run_cli(["x.js"]) == 2
    assert run_cli(["-o", "ts"]) == 2
    assert run_cli(["-o"]) == 2


def test_unknown_option(capsys):
    assert run_cli(["-o", "ts", "--bogus", "x.js"]) == 2


def test_help(capsys):
    assert run_cli(["--help"]) == 0
    assert "tsxFromJsx" in capsys.readouterr().out


def test_output_path():
    assert output_path("src/a.js", "ts") == "src/a.ts"
    assert output_path("src/a.js", "tsx") == "src/a.tsx"
    assert output_path("src/a.js.flow", "d.ts") == "src/a.d.ts"
    assert output_path("src/a.jsx", "tsxFromJsx") == "src/a.tsx"


def test_undecodable_file_fails_alone(tmp_path, capsys):
    (tmp_path / "a.js").write_bytes(b"const a = '\xff';\n")
    write(tmp_path / "b.js", "const b = 1;\n")
    assert run_cli(["-o", "ts", "--no-color", str(tmp_path)]) == 1
    captured = capsys.readouterr()
    assert "1 converted, 1 failed" in captured.out
    assert "cannot convert file" in captured.err
    assert not (tmp_path / "a.ts").exists()
    assert (tmp_path / "b.ts").read_text() == "const b = 1;\n"


def test_diagnostic_layout():
    es = ErrorSink()
    es.warning("bad", Source.from_text("const a = 1;\ntype = 2;\n", "x.js"), 13, "try this")
    assert es.warnings[0].format(use_color=False).splitlines() == [
        "warning: bad",
        " --> x.js:2:1",
        "  |",
        "2 | type = 2;",
        "  | ^~~~",
        "  |",
        "  | help: try this",
    ]
