from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import field, dataclass


class Type(ABC):
    """Static type of an IR value."""

    @abstractmethod
    def method_set(self) -> tuple[MethodSig, ...]:
        """Methods callable on a value of this type."""
        ...

    def lookup_method(self, name: str) -> MethodSig | None:
        for method in self.method_set():
            if method.name == name:
                return method
        return None


@dataclass(frozen=True)
class MethodSig:
    name: str
    params: tuple[Type, ...] = ()
    results: tuple[Type, ...] = ()

    def __str__(self) -> str:
        params = ", ".join(map(str, self.params))
        if len(self.results) == 1:
            return f"{self.name}({params}) {self.results[0]}"
        results = ", ".join(map(str, self.results))
        return f"{self.name}({params}) ({results})" if results else f"{self.name}({params})"


@dataclass(frozen=True)
class Basic(Type):
    name: str

    def method_set(self) -> tuple[MethodSig, ...]:
        return ()

    def __str__(self) -> str:
        return self.name


@dataclass(eq=False)
class Named(Type):
    """A declared type. Two named types are the same type iff their
    qualified names match, so method lists may refer back to the type itself.
    """

    module: str
    name: str
    methods: list[MethodSig] = field(default_factory=list)
    """Methods with a value receiver."""
    pointer_methods: list[MethodSig] = field(default_factory=list)
    """Methods with a pointer receiver, only in the method set of `*T`."""
    interface: bool = False

    @property
    def qualname(self) -> str:
        if not self.module:
            return self.name
        return f"{self.module}.{self.name}"

    def method_set(self) -> tuple[MethodSig, ...]:
        return tuple(self.methods)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Named) and other.qualname == self.qualname

    def __hash__(self) -> int:
        return hash(("named", self.qualname))

    def __str__(self) -> str:
        return self.qualname

    def __repr__(self) -> str:
        return f"Named({self.qualname!r})"


@dataclass(frozen=True)
class Pointer(Type):
    elem: Type

    def method_set(self) -> tuple[MethodSig, ...]:
        if isinstance(self.elem, Named) and not self.elem.interface:
            return tuple(self.elem.methods) + tuple(self.elem.pointer_methods)
        return ()

    def __str__(self) -> str:
        return f"*{self.elem}"


@dataclass(frozen=True)
class Slice(Type):
    elem: Type

    def method_set(self) -> tuple[MethodSig, ...]:
        return ()

    def __str__(self) -> str:
        return f"[]{self.elem}"


@dataclass(frozen=True)
class Map(Type):
    key: Type
    elem: Type

    def method_set(self) -> tuple[MethodSig, ...]:
        return ()

    def __str__(self) -> str:
        return f"map[{self.key}]{self.elem}"


@dataclass(frozen=True)
class Tuple(Type):
    elems: tuple[Type, ...]

    def method_set(self) -> tuple[MethodSig, ...]:
        return ()

    def __str__(self) -> str:
        return "(" + ", ".join(map(str, self.elems)) + ")"


@dataclass(frozen=True)
class Signature(Type):
    params: tuple[Type, ...] = ()
    results: tuple[Type, ...] = ()

    def method_set(self) -> tuple[MethodSig, ...]:
        return ()

    def __str__(self) -> str:
        params = ", ".join(map(str, self.params))
        if len(self.results) == 1:
            return f"func({params}) {self.results[0]}"
        return f"func({params}) ({', '.join(map(str, self.results))})"


String = Basic("string")
Int = Basic("int")
Bool = Basic("bool")
Any = Named("", "any", interface=True)

Error = Named(
    "",
    "error",
    methods=[MethodSig("Error", (), (String,))],
    interface=True,
)
"""The universe `error` interface."""

BASIC_TYPES: dict[str, Type] = {
    "error": Error,
    "any": Any,
    "string": String,
    "int": Int,
    "bool": Bool,
}


def is_error_like(typ: Type) -> bool:
    """Whether `typ` satisfies the error capability: an `Error()` method with
    no parameters returning a single string.
    """
    method = typ.lookup_method("Error")
    return method is not None and not method.params and method.results == (String,)


def is_error_interface(typ: Type) -> bool:
    return typ == Error


def split_qualname(qualname: str) -> tuple[str, str]:
    """Split `github.com/x/pkg.Name` into module and name.

    The name starts after the last dot that follows the last path separator.
    Names without a dot have no module.
    """
    slash = qualname.rfind("/")
    dot = qualname.rfind(".")
    if dot <= slash:
        return "", qualname
    return qualname[:dot], qualname[dot + 1 :]
