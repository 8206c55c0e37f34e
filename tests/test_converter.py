import pytest

from flowts import (
    ErrorSink,
    FlowToTs,
    Source,
    TransformError,
    mk,
)


@pytest.fixture
def es():
    return ErrorSink()


@pytest.fixture
def cv(es):
    return FlowToTs(Source.from_text("", "<test>"), es)


def ref(name, *args):
    targs = mk("targs", 0, list(args)) if args else None
    return mk("type_generic", 0, mk("ident", 0, name), targs)


def prop(key, value, optional=False, variance=None):
    return mk("obj_prop", 0, key, value, optional, variance, False)


def test_target_nodes_pass_through(cv):
    for node in (mk("ts_string", 0), mk("ts_union", 0, [mk("ts_null", 0)]), mk("ts_type_literal", 0, [])):
        assert cv.convert_type(node) is node


def test_primitives(cv):
    kinds = {
        "type_any": "ts_any",
        "type_mixed": "ts_unknown",
        "type_empty": "ts_never",
        "type_exists": "ts_any",
        "type_void": "ts_void",
        "type_null": "ts_null",
        "type_string": "ts_string",
        "type_number": "ts_number",
        "type_boolean": "ts_boolean",
    }
    for flow, ts in kinds.items():
        assert cv.convert_type(mk(flow, 0)).kind == ts


def test_nullable_adds_only_null(cv):
    out = cv.convert_type(mk("type_nullable", 0, ref("Foo")))
    assert out.kind == "ts_union"
    assert [t.kind for t in out.data[0]] == ["ts_type_ref", "ts_null"]


def test_nullable_union_is_flattened(cv):
    inner = mk("type_union", 0, [ref("A"), ref("B")])
    out = cv.convert_type(mk("type_nullable", 0, inner))
    assert [t.kind for t in out.data[0]] == ["ts_type_ref", "ts_type_ref", "ts_null"]


def test_unknown_kind_is_fatal_with_position(cv):
    with pytest.raises(TransformError) as exc:
        cv.convert_type(mk("type_bogus", 7))
    assert exc.value.kind == "type_bogus"
    assert exc.value.pos == 7


def test_typeof_reference(cv):
    out = cv.convert_type(mk("type_typeof", 0, ref("x")))
    assert out.kind == "ts_typeof"
    assert out.data[0].data == ("x",)


def test_typeof_non_reference_warns(cv, es):
    out = cv.convert_type(mk("type_typeof", 0, mk("type_string_lit", 0, "'a'")))
    assert out.kind == "ts_literal"
    assert len(es.warnings) == 1
    assert "typeof" in es.warnings[0].msg


def test_object_preserves_member_order(cv):
    obj = mk("type_object", 0, [prop(k, mk("type_string", 0)) for k in ("z", "a", "m")], False)
    out = cv.convert_type(obj)
    assert out.kind == "ts_type_literal"
    assert [m.data[0] for m in out.data[0]] == ["z", "a", "m"]


def test_exact_object_has_no_intersection(cv):
    obj = mk("type_object", 0, [prop("foo", mk("type_number", 0))], True)
    assert cv.convert_type(obj).kind == "ts_type_literal"


def test_spreads_become_intersection(cv):
    obj = mk("type_object", 0, [mk("obj_spread", 0, ref("B")), prop("c", mk("type_number", 0))], False)
    out = cv.convert_type(obj)
    assert out.kind == "ts_intersection"
    assert [t.kind for t in out.data[0]] == ["ts_type_literal", "ts_type_ref"]


def test_only_spread_drops_empty_literal(cv):
    obj = mk("type_object", 0, [mk("obj_spread", 0, ref("B"))], False)
    assert cv.convert_type(obj).kind == "ts_type_ref"


def test_indexer_becomes_mapped_type(cv):
    obj = mk("type_object", 0, [mk("obj_indexer", 0, "key", ref("K"), mk("type_number", 0), None)], False)
    out = cv.convert_type(obj)
    assert out.kind == "ts_mapped"
    name, constraint, value, readonly = out.data
    assert name == "K"
    assert constraint.kind == "ts_type_ref"
    assert value.kind == "ts_number"
    assert readonly is False


def test_second_indexer_warns_and_keeps_first(cv, es):
    first = mk("obj_indexer", 0, "k", mk("type_string", 0), mk("type_number", 0), None)
    second = mk("obj_indexer", 5, "n", mk("type_number", 0), mk("type_string", 0), None)
    out = cv.convert_type(mk("type_object", 0, [first, second], False))
    assert out.data[1].kind == "ts_string"
    assert len(es.warnings) == 1
    assert es.warnings[0].lexpos == 5


def test_anonymous_indexer_stays_index_signature(cv, es):
    idx = mk("obj_indexer", 0, None, ref("K"), mk("type_number", 0), None)
    extra = mk("obj_indexer", 4, None, mk("type_string", 0), mk("type_number", 0), None)
    out = cv.convert_type(mk("type_object", 0, [idx, prop("x", mk("type_number", 0)), extra], False))
    assert out.kind == "ts_type_literal"
    assert [m.kind for m in out.data[0]] == ["ts_index_sig", "ts_prop_sig"]
    assert out.data[0][0].data[0] == "k"
    assert len(es.warnings) == 1
    assert es.warnings[0].lexpos == 4


def test_fields_next_to_indexer_are_dropped_with_warning(cv, es):
    idx = mk("obj_indexer", 0, "k", mk("type_string", 0), mk("type_number", 0), None)
    out = cv.convert_type(mk("type_object", 0, [idx, prop("x", mk("type_number", 0))], False))
    assert out.kind == "ts_mapped"
    assert len(es.warnings) == 1


def test_covariant_field_is_readonly(cv, es):
    out = cv.convert_member(prop("b", ref("B"), variance="+"))
    assert out.kind == "ts_prop_sig"
    assert out.data[3] is True
    assert not es.warnings


def test_contravariant_field_warns(cv, es):
    out = cv.convert_member(prop("c", ref("C"), variance="-"))
    assert out.data[3] is False
    assert len(es.warnings) == 1
    assert "contravariant" in es.warnings[0].msg


@pytest.mark.parametrize("id,key,expected", [
    ("idx", mk("type_string", 0), "idx"),
    (None, mk("type_generic", 0, mk("ident", 0, "Key"), None), "key"),
    (None, mk("type_number", 0), "n"),
    (None, mk("type_string", 0), "key"),
])
def test_index_key_name(cv, id, key, expected):
    out = cv.convert_member(mk("obj_indexer", 0, id, key, mk("type_number", 0), None))
    assert out.kind == "ts_index_sig"
    assert out.data[0] == expected


def test_function_parameter_names(cv):
    params = [
        mk("fn_param", 0, None, ref("A"), False),
        mk("fn_param", 0, "coolArg", ref("B"), False),
        mk("fn_param", 0, None, mk("type_string", 0), True),
        mk("fn_param", 0, None, ref("A"), False),
    ]
    fn = mk("type_function", 0, None, params, None, ref("C"))
    out = cv.convert_type(fn)
    assert [p.data[0] for p in out.data[1]] == ["a", "coolArg", "arg2", "arg3"]
    assert out.data[1][2].data[2] is True


def test_function_reserved_name_falls_back(cv):
    fn = mk("type_function", 0, None, [mk("fn_param", 0, None, ref("Class"), False)], None, mk("type_void", 0))
    out = cv.convert_type(fn)
    assert out.data[1][0].data[0] == "arg0"


def test_function_rest_parameter(cv):
    rest = mk("fn_param", 0, None, ref("Array", mk("type_string", 0)), False)
    out = cv.convert_type(mk("type_function", 0, None, [], rest, mk("type_void", 0)))
    assert out.data[2].data[0] == "rest"


def test_type_params_keep_order_bound_and_default(cv):
    tparams = mk("tparams", 0, [
        mk("tparam", 0, "A", None, None, None),
        mk("tparam", 0, "B", mk("type_number", 0), mk("type_number_lit", 0, "1"), None),
    ])
    out = cv.convert_type_params(tparams)
    assert [tp.data[0] for tp in out.data[0]] == ["A", "B"]
    assert out.data[0][1].data[1].kind == "ts_number"
    assert out.data[0][1].data[2].kind == "ts_literal"


def test_type_param_variance_warns(cv, es):
    cv.convert_type_params(mk("tparams", 0, [mk("tparam", 0, "T", None, None, "+")]))
    assert len(es.warnings) == 1


def test_failing_type_argument_is_dropped_with_warning(cv, es):
    targs = mk("targs", 0, [mk("type_string", 0), mk("type_bogus", 3)])
    out = cv.convert_type_args(targs)
    assert [t.kind for t in out.data[0]] == ["ts_string"]
    assert len(es.warnings) == 1
    assert es.warnings[0].lexpos == 3


def test_all_type_arguments_dropped_gives_none(cv):
    assert cv.convert_type_args(mk("targs", 0, [mk("type_bogus", 0)])) is None


def test_readonly_is_one_level_deep(cv):
    nested = mk("type_object", 0, [prop("y", mk("type_string", 0))], False)
    obj = mk("type_object", 0, [prop("x", nested)], False)
    out = cv.convert_type(ref("$ReadOnly", obj))
    assert out.data[0][0].data[3] is True
    assert out.data[0][0].data[1].data[0][0].data[3] is False


def test_timer_handles_are_numbers(cv):
    assert cv.convert_type(ref("TimeoutID")).kind == "ts_number"
    assert cv.convert_type(ref("IntervalID")).kind == "ts_number"
