import pytest

from flowts import (
    REVIEW_COMMENT,
    ErrorSink,
    FlowToTs,
    ParseError,
    Source,
    TransformError,
    mk,
    parse,
    print_tree,
    transform,
)


def convert(text, es=None):
    return transform(text, "<test>", es).rstrip("\n")


# ---- imports / exports

@pytest.mark.parametrize("src", [
    "import type {Foo} from './foo'",
    "import {type Foo} from './foo'",
])
def test_import_type_marker_cleared(src):
    assert convert(src) == "import { Foo } from './foo';"


def test_import_default_and_named():
    assert convert("import React, {type Node as N} from 'react'") == "import React, { Node as N } from 'react';"


def test_import_typeof_warns():
    es = ErrorSink()
    assert convert("import typeof T from './t'", es) == "import T from './t';"
    assert len(es.warnings) == 1


def test_export_type_specifiers():
    assert convert("export type {A, B} from './x'") == "export { A, B } from './x';"


def test_export_type_alias():
    assert convert("export type Foo = string") == "export type Foo = string;"


# ---- type aliases

@pytest.mark.parametrize("src,out", [
    ("type F = (A, B) => C", "type F = (a: A, b: B) => C;"),
    ("type F = (coolArg: A, B) => C", "type F = (coolArg: A, b: B) => C;"),
    ("type F = (A<number>, B) => C", "type F = (a: A<number>, b: B) => C;"),
    ("type A = () => string", "type A = () => string;"),
    ("type F = (...Array<string>) => void", "type F = (...rest: Array<string>) => void;"),
])
def test_function_types(src, out):
    assert convert(src) == out


@pytest.mark.parametrize("src,out", [
    ("type A = {onChange: string => void}", "type A = {\n  onChange: (arg0: string) => void\n};"),
    ("type F = Event => void", "type F = (event: Event) => void;"),
    ("declare function f(x: number): string => void;", "declare function f(x: number): (arg0: string) => void;"),
])
def test_unparenthesized_parameter(src, out):
    assert convert(src) == out


def test_function_returning_function_type():
    src = "function f(x: number): string => void { return g; }"
    assert convert(src) == "function f(x: number): (arg0: string) => void {\n  return g;\n}"


def test_arrow_return_annotation_with_block():
    assert convert("const f = (x: T): string => { return x; }") == \
        "const f = (x: T): string => {\n  return x;\n};"


@pytest.mark.parametrize("src,out", [
    ("type A = {| foo: number |}", "type A = {\n  foo: number\n};"),
    ("type A<B> = {| foo: number, bar: B |}", "type A<B> = {\n  foo: number,\n  bar: B\n};"),
    ("type A<B: number> = {| foo: number, bar: B |}", "type A<B extends number> = {\n  foo: number,\n  bar: B\n};"),
    ("type A = {foo: mixed}", "type A = {\n  foo: unknown\n};"),
    ("type A = {...B, c: number}", "type A = {\n  c: number\n} & B;"),
    ("type A = {}", "type A = {};"),
])
def test_object_types(src, out):
    assert convert(src) == out


def test_indexer_becomes_mapped_type():
    assert convert("type A<K> = {[key: K]: number}") == "type A<K> = { [K in K]: number };"


def test_covariant_indexer_is_readonly_mapped_type():
    assert convert("type A = {+[k: string]: number}") == "type A = { readonly [K in string]: number };"


def test_anonymous_indexer_is_index_signature():
    assert convert("type A<K> = {[K]: number}") == "type A<K> = {\n  [k: K]: number\n};"


def test_anonymous_numeric_indexer():
    assert convert("type A = {+[number]: string}") == "type A = {\n  readonly [n: number]: string\n};"


def test_indexer_with_fields_warns():
    es = ErrorSink()
    assert convert("type A = {[k: string]: number, x: number}", es) == "type A = { [K in string]: number };"
    assert len(es.warnings) == 1


def test_second_indexer_warns():
    es = ErrorSink()
    convert("type A = {[k: string]: number, [n: number]: string}", es)
    assert len(es.warnings) == 1


@pytest.mark.parametrize("src,out", [
    ("type B = $Exact<A>", "type B = A;"),
    ("type B = $Keys<A>", "type B = keyof A;"),
    ("type B = $Values<A>", "type B = A[keyof A];"),
    ("type B = $Call<A>", "type B = ReturnType<A>;"),
    ("type B = $ElementType<T, k>", "type B = T[k];"),
    ("type B = $PropertyType<T, 'foo'>", 'type B = T["foo"];'),
    ("type B = $Diff<A, B>", "type B = Exclude<A, B>;"),
    ("type B = $Rest<A, B>", "type B = Exclude<A, B>;"),
    ("type B = $ReadOnlyArray<T>", "type B = ReadonlyArray<T>;"),
    ("type B = $Shape<T>", "type B = Partial<T>;"),
    ("type B = $NonMaybeType<T>", "type B = NonNullable<T>;"),
    ("type B = $ReadOnly<{a: string}>", "type B = {\n  readonly a: string\n};"),
    ("type B = $Keys<A | B>", "type B = keyof (A | B);"),
    ("type T = TimeoutID", "type T = number;"),
    ("type E = SyntheticEvent<HTMLInputElement>", "type E = React.SyntheticEvent<HTMLInputElement>;"),
    ("type E = SyntheticMouseEvent<T>", "type E = React.MouseEvent<T>;"),
    ("type E = SyntheticKeyboardEvent<T>", "type E = React.KeyboardEvent<T>;"),
    ("type N = React.Node", "type N = React.ReactNode;"),
    ("type N = React.Element<T>", "type N = React.ReactElement<T>;"),
    ("type M = Map<string, number>", "type M = Map<string, number>;"),
])
def test_special_generics(src, out):
    assert convert(src) == out


@pytest.mark.parametrize("src,out", [
    ("type A = ?string", "type A = string | null;"),
    ("type U = ?(A | B)", "type U = A | B | null;"),
    ("type A = ?() => void", "type A = (() => void) | null;"),
    ("type L = (?string)[]", "type L = (string | null)[];"),
    ("type L = Array<?string>", "type L = Array<string | null>;"),
    ("type S = 'a' | 'b'", 'type S = "a" | "b";'),
    ("type T = [A, B]", "type T = [A, B];"),
    ("type E = *", "type E = any;"),
    ("type T = typeof x", "type T = typeof x;"),
    ("type V = void", "type V = void;"),
    ("type N = empty", "type N = never;"),
    ("type I = A & B", "type I = A & B;"),
])
def test_type_printing(src, out):
    assert convert(src) == out


def test_opaque_type_is_erased_with_warning():
    es = ErrorSink()
    assert convert("opaque type A = string", es) == "type A = string;"
    assert len(es.warnings) == 1


def test_declared_opaque_type_uses_supertype():
    assert convert("declare opaque type A: string;") == "declare type A = string;"


def test_declared_opaque_type_without_supertype_is_unknown():
    assert convert("declare opaque type A;") == "declare type A = unknown;"


# ---- interfaces

def test_interface_with_variance():
    es = ErrorSink()
    assert convert("interface A { +b: B, -c: C }", es) == "interface A {\n  readonly b: B;\n  c: C;\n}"
    assert len(es.warnings) == 1


def test_interface_extends_and_index_signature():
    src = "interface A extends B<C> { [K]: number; x?: string }"
    assert convert(src) == "interface A extends B<C> {\n  [k: K]: number;\n  x?: string;\n}"


def test_interface_method():
    assert convert("interface A { m(x: number): void }") == "interface A {\n  m(x: number): void;\n}"


# ---- casts, annotations, functions, classes

def test_type_cast():
    assert convert("1 + (a: number)") == "1 + (a as number);"


def test_nullable_arrow_return():
    assert convert("const f = (): ?Foo<n> => x") == "const f = (): Foo<n> | null => x;"


def test_function_declaration():
    src = "function f<T>(x: ?T, y?: string): Array<T> { return [x]; }"
    out = "function f<T>(x: T | null, y?: string): Array<T> {\n  return [x];\n}"
    assert convert(src) == out


def test_class_declaration():
    src = "class A<T> extends B<T> implements I {\n  x: T;\n  foo(y: T): void {}\n}"
    out = "class A<T> extends B<T> implements I {\n  x: T;\n  foo(y: T): void {}\n}"
    assert convert(src) == out


def test_generic_new_expression():
    assert convert("const m = new Map<string, ?number>()") == "const m = new Map<string, number | null>();"


# ---- declarations

def test_declare_var():
    assert convert("declare var x: number;") == "declare var x: number;"


def test_declare_function():
    assert convert("declare function f(x: number): string;") == "declare function f(x: number): string;"


def test_declare_function_with_type_params():
    src = "declare function f<T>(T, ...Array<T>): T;"
    assert convert(src) == "declare function f<T>(t: T, ...rest: Array<T>): T;"


def test_declare_class():
    assert convert("declare class A extends B<T> {}") == "declare class A extends B<T> {}"


def test_declare_class_qualified_superclass():
    assert convert("declare class A extends React.Component<P> {}") == \
        "declare class A extends React.Component<P> {}"


def test_declare_class_multiple_supertypes_warns():
    es = ErrorSink()
    assert convert("declare class A extends B, C {}", es) == "declare class A extends B {}"
    assert len(es.warnings) == 1


def test_declare_class_members_dropped_with_warning():
    es = ErrorSink()
    assert convert("declare class A { foo(): void }", es) == "declare class A {}"
    assert len(es.warnings) == 1


def test_declare_export_named():
    assert convert("declare export function f(): void;") == "export declare function f(): void;"


def test_declare_export_default_is_split():
    assert convert("declare export default class A {}") == "declare class A {}\nexport default A;"


def test_declare_export_default_type_is_fatal():
    with pytest.raises(TransformError):
        convert("declare export default string;")


def test_declared_function_without_function_type_is_fatal():
    src = Source.from_text("declare function f(): void;", "<test>")
    cv = FlowToTs(src, ErrorSink())
    tree = parse(src)
    decl = tree.data[0][0]
    decl.data = (decl.data[0], mk("type_annotation", 21, mk("type_string", 21)))
    with pytest.raises(TransformError) as exc:
        cv.rewrite_declarations(tree)
    assert exc.value.pos == 21


# ---- desugaring

def test_nullish_coalescing():
    out = convert("foo ?? bar")
    assert out == f"{REVIEW_COMMENT} (foo !== null && foo !== undefined) ? foo : bar;"


def test_nested_nullish_has_single_comment():
    out = convert("const x = a ?? b ?? c")
    assert out.count(REVIEW_COMMENT) == 1
    assert "??" not in out.replace(REVIEW_COMMENT, "")


def test_optional_member():
    out = convert("a?.b")
    assert out == f"{REVIEW_COMMENT} (a === null || a === undefined) ? undefined : a.b;"


def test_optional_chain_short_circuits():
    out = convert("a?.b.c")
    assert out == f"{REVIEW_COMMENT} (a === null || a === undefined) ? undefined : a.b.c;"


def test_optional_call():
    out = convert("f?.()")
    assert out == f"{REVIEW_COMMENT} (f === null || f === undefined) ? undefined : f();"


def test_mixed_operators_have_single_comment():
    out = convert("x = a?.b ?? c")
    assert out.count(REVIEW_COMMENT) == 1
    assert "?." not in out.replace(REVIEW_COMMENT, "")


def test_nested_optional_chain_has_single_comment():
    inner = "(a === null || a === undefined) ? undefined : a.b"
    out = convert("a?.b?.c")
    assert out == f"{REVIEW_COMMENT} (({inner}) === null || ({inner}) === undefined) ? undefined : ({inner}).c;"
    assert out.count(REVIEW_COMMENT) == 1


def test_optional_chain_inside_nullish_has_single_comment():
    out = convert("x ?? (y?.z)")
    assert out == (f"{REVIEW_COMMENT} (x !== null && x !== undefined) ? x : "
                   "((y === null || y === undefined) ? undefined : y.z);")


def test_parenthesized_chain_ends_short_circuit():
    out = convert("(a?.b).c")
    assert out == f"({REVIEW_COMMENT} (a === null || a === undefined) ? undefined : a.b).c;"


def test_parenthesized_chain_then_call():
    out = convert("(a?.b)()")
    assert out == f"({REVIEW_COMMENT} (a === null || a === undefined) ? undefined : a.b)();"


# ---- template literals

@pytest.mark.parametrize("src", [
    "const s = `plain`;",
    "const s = `costs ${'$'}${n + 1}`;",
])
def test_templates_without_flow_syntax_are_kept(src):
    assert convert(src) == src


def test_nullish_inside_template_is_rewritten():
    out = convert("const s = `x ${a ?? b}`")
    assert out == "const s = `x ${" + REVIEW_COMMENT + " (a !== null && a !== undefined) ? a : b}`;"


def test_type_cast_inside_template():
    assert convert("const s = `n: ${(n: number)}!`") == "const s = `n: ${n as number}!`;"


def test_nested_templates():
    assert convert("x = `a ${`b ${c}`} d`") == "x = `a ${`b ${c}`} d`;"


def test_template_with_braces_in_substitution():
    assert convert("x = `${ {a: 1}.a }`") == "x = `${{\n  a: 1\n}.a}`;"


def test_unterminated_template():
    with pytest.raises(ParseError):
        convert("const s = `abc ${x")


# ---- whole files

def test_flow_pragma_is_stripped():
    src = "// @flow\n// hello\nconst a: number = 1;\n"
    assert convert(src) == "// hello\nconst a: number = 1;"


def test_blank_lines_are_kept():
    assert convert("const a = 1;\n\nconst b = 2;\n") == "const a = 1;\n\nconst b = 2;"


def test_statements_without_semicolons():
    src = "type A = string\nconst a: A = 'x'\nexport default a\n"
    assert convert(src) == "type A = string;\nconst a: A = 'x';\nexport default a;"


def test_comment_inside_type_literal_stays_on_member():
    src = "type A = {\n  // the id\n  id: string\n}\nconst x = 1"
    assert convert(src) == "type A = {\n  // the id\n  id: string\n};\nconst x = 1;"


def test_trailing_comment_stays_on_its_line():
    assert convert("const a = 1 // end") == "const a = 1; // end"


def test_interface_member_comments():
    src = "interface A {\n  x: string; // the x\n  /* why */\n  y: number\n}"
    assert convert(src) == "interface A {\n  x: string; // the x\n  /* why */\n  y: number;\n}"


def test_class_member_trailing_comment():
    assert convert("class A {\n  x: number; // count\n}") == "class A {\n  x: number; // count\n}"


def test_object_literal_property_comment():
    assert convert("const o = {\n  // first\n  a: 1\n}") == "const o = {\n  // first\n  a: 1\n};"


def test_readonly_keeps_member_comments():
    src = "type B = $ReadOnly<{\n  // doc\n  a: string\n}>"
    assert convert(src) == "type B = {\n  // doc\n  readonly a: string\n};"


def test_running_passes_twice_is_stable():
    src = Source.from_text("type A = ?{+x: $Keys<B>}\nconst y = (z: A) ?? w\n", "<test>")
    tree = parse(src)
    cv = FlowToTs(src, ErrorSink())
    cv.run(tree)
    once = print_tree(tree)
    cv.run(tree)
    assert print_tree(tree) == once


def test_parse_error():
    with pytest.raises(ParseError):
        convert("const = 1")
