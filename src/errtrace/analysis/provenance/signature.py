from errtrace.ir import types


def error_results(signature: types.Signature) -> list[int]:
    """Indices of the error-like results of `signature`."""
    return [
        idx for idx, typ in enumerate(signature.results) if types.is_error_like(typ)
    ]
