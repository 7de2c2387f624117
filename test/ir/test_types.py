from errtrace.ir import types


def error_method(*params, results=(types.String,)):
    return types.MethodSig("Error", tuple(params), tuple(results))


def test_error_interface():
    assert types.is_error_like(types.Error)
    assert types.is_error_interface(types.Error)
    assert not types.is_error_interface(types.Any)


def test_value_receiver():
    typ = types.Named("a", "myError", methods=[error_method()])
    assert types.is_error_like(typ)
    assert types.is_error_like(types.Pointer(typ))
    assert not types.is_error_interface(typ)


def test_pointer_receiver():
    typ = types.Named("a", "notMyError", pointer_methods=[error_method()])
    assert not types.is_error_like(typ)
    assert types.is_error_like(types.Pointer(typ))


def test_pointer_to_interface_has_no_methods():
    assert not types.is_error_like(types.Pointer(types.Error))


def test_error_method_shape():
    with_param = types.Named("a", "T", methods=[error_method(types.Int)])
    wrong_result = types.Named("a", "U", methods=[error_method(results=(types.Int,))])
    two_results = types.Named(
        "a", "V", methods=[error_method(results=(types.String, types.Error))]
    )
    assert not types.is_error_like(with_param)
    assert not types.is_error_like(wrong_result)
    assert not types.is_error_like(two_results)


def test_composite_types_are_not_errors():
    for typ in (
        types.String,
        types.Slice(types.Error),
        types.Map(types.Int, types.Error),
        types.Tuple((types.Error, types.String)),
    ):
        assert not types.is_error_like(typ)


def test_named_identity():
    assert types.Named("a", "T") == types.Named("a", "T")
    assert types.Named("a", "T") != types.Named("b", "T")
    assert hash(types.Named("a", "T")) == hash(types.Named("a", "T"))
    assert types.Pointer(types.Named("a", "T")) == types.Pointer(types.Named("a", "T"))


def test_type_names():
    named = types.Named("github.com/x/pkg", "Err")
    assert str(named) == "github.com/x/pkg.Err"
    assert str(types.Pointer(named)) == "*github.com/x/pkg.Err"
    assert str(types.Map(types.Int, types.Error)) == "map[int]error"
    assert str(types.Slice(types.Error)) == "[]error"
    assert str(types.Tuple((types.Error, types.String))) == "(error, string)"


def test_split_qualname():
    assert types.split_qualname("a.f") == ("a", "f")
    assert types.split_qualname("github.com/x/pkg.F") == ("github.com/x/pkg", "F")
    assert types.split_qualname("github.com/x/pkg") == ("", "github.com/x/pkg")
    assert types.split_qualname("error") == ("", "error")
