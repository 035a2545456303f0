# noderpc/registry/registry.py
from __future__ import annotations

import inspect
import types
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from noderpc.errors import CoercionError
from noderpc.registry.callspec import BITCOIND_CALLSPEC
from noderpc.registry.coercion import ANNOTATIONS, CONVERTERS, TypeTag


# ──────────────────────────────────────────────────────────────
# ProcedureSpec – name + parameter tags of one remote procedure
# ──────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class ProcedureSpec:
    """
    Describes one remote procedure.

    The leading ``len(param_types)`` positional arguments of a call are
    coerced slot by slot; any further arguments are sent as given.
    """

    name: str
    """Procedure name in its declared casing."""

    param_types: Tuple[TypeTag, ...] = ()
    """Tag of each declared positional slot."""

    signature: inspect.Signature = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "signature", self._build_signature())

    # ───── Helper: wire name ─────
    @property
    def wire_name(self) -> str:
        """Name sent in the ``method`` field of the request."""
        return self.name.lower()

    @property
    def arity(self) -> int:
        return len(self.param_types)

    # ───── Coercion ─────
    def coerce(self, params: Sequence[Any]) -> list:
        """Coerce the leading slots of ``params``; fewer args than slots is fine."""
        coerced = list(params)
        for i, tag in enumerate(self.param_types[: len(coerced)]):
            try:
                coerced[i] = CONVERTERS[tag](coerced[i])
            except CoercionError as e:
                e.message = f"{self.name}: argument {i} ({tag}): {e.message}"
                e.data = {"method": self.wire_name, "index": i, "tag": str(tag)}
                e.args = (e.message,)
                raise
        return coerced

    # ───── Signature of the generated method ─────
    def _build_signature(self) -> inspect.Signature:
        params = [
            inspect.Parameter(
                f"arg{i}",
                inspect.Parameter.POSITIONAL_ONLY,
                default=None,
                annotation=ANNOTATIONS[tag],
            )
            for i, tag in enumerate(self.param_types)
        ]
        params.append(inspect.Parameter("extra", inspect.Parameter.VAR_POSITIONAL))
        params.append(
            inspect.Parameter(
                "callback",
                inspect.Parameter.KEYWORD_ONLY,
                default=None,
                annotation=Optional[Callable[[Any, Any], Any]],
            )
        )
        return inspect.Signature(params)

    # ───── To JSON (for introspection) ─────
    def to_json(self) -> dict:
        return {
            "name": self.name,
            "wire_name": self.wire_name,
            "param_types": [str(t) for t in self.param_types],
        }


def _parse_tags(name: str, tags: Any) -> Tuple[TypeTag, ...]:
    if isinstance(tags, str):
        tags = tags.split()
    elif not isinstance(tags, (list, tuple)):
        raise TypeError(f"Procedure '{name}': tags must be a string or a sequence, got {type(tags).__name__}")
    parsed = []
    for tag in tags:
        if not isinstance(tag, str):
            raise TypeError(f"Procedure '{name}': tag {tag!r} is not a string")
        parsed.append(TypeTag.parse(tag))
    return tuple(parsed)


# ──────────────────────────────────────────────────────────────
# RemoteMethod – descriptor installed on the host class
# ──────────────────────────────────────────────────────────────
class RemoteMethod:
    """Binds a ProcedureSpec to whichever host instance it is looked up on."""

    def __init__(self, spec: ProcedureSpec):
        self.spec = spec
        self.__doc__ = f"Call the remote procedure '{spec.wire_name}' ({' '.join(map(str, spec.param_types)) or 'no declared params'})."

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        spec = self.spec

        def method(*params: Any, callback: Optional[Callable[[Any, Any], Any]] = None) -> Any:
            return instance._invoke(spec, params, callback)

        method.__name__ = spec.name
        method.__qualname__ = f"{type(instance).__name__}.{spec.name}"
        method.__doc__ = self.__doc__
        method.__signature__ = spec.signature
        return method

    def __repr__(self):
        return f"<RemoteMethod {self.spec.name}>"


# ──────────────────────────────────────────────────────────────
# ProcedureRegistry
# ──────────────────────────────────────────────────────────────
class ProcedureRegistry:
    """
    Immutable table of remote procedures, compiled once from declarative data.

    ``table`` maps a procedure name to its tags, either a space separated
    string (``"str int"``) or a sequence of tag strings. A malformed table
    raises at construction.
    """

    def __init__(self, name: str, table: Mapping[str, Any]):
        if not isinstance(table, Mapping):
            raise TypeError("procedure table must be a mapping")
        self._name = name
        specs: Dict[str, ProcedureSpec] = {}
        for proc_name, tags in table.items():
            if not isinstance(proc_name, str) or not proc_name.isidentifier():
                raise ValueError(f"Invalid procedure name: {proc_name!r}")
            key = proc_name.lower()
            if key in specs:
                raise ValueError(f"Procedure '{proc_name}' already registered as '{specs[key].name}'")
            specs[key] = ProcedureSpec(proc_name, _parse_tags(proc_name, tags))
        self._specs = types.MappingProxyType(specs)
        self._installed: set = set()

    # ───── Properties ─────
    @property
    def name(self) -> str:
        return self._name

    @property
    def specs(self) -> Mapping[str, ProcedureSpec]:
        return self._specs

    def __len__(self) -> int:
        return len(self._specs)

    def __iter__(self):
        return iter(self._specs.values())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._specs

    # ───── Get Procedure ─────
    def get(self, name: str) -> ProcedureSpec:
        try:
            return self._specs[name.lower()]
        except KeyError:
            raise KeyError(f"Procedure not found: {name}") from None

    # ───── Introspection ─────
    def list_methods(self) -> Dict[str, dict]:
        return {spec.name: spec.to_json() for spec in self._specs.values()}

    # ───── Install onto a class ─────
    def install(self, cls: type) -> type:
        """Put each procedure on ``cls`` under its declared and lowercase name."""
        if cls in self._installed:
            return cls
        for spec in self._specs.values():
            descriptor = RemoteMethod(spec)
            for attr in dict.fromkeys((spec.name, spec.wire_name)):
                existing = inspect.getattr_static(cls, attr, None)
                if existing is not None and not isinstance(existing, RemoteMethod):
                    raise ValueError(f"Procedure '{spec.name}' collides with {cls.__name__}.{attr}")
                setattr(cls, attr, descriptor)
        self._installed.add(cls)
        return cls

    def __repr__(self):
        return f"<ProcedureRegistry {self._name}: {len(self._specs)} procedures>"


# ──────────────────────────────────────────────────────────────
# ProcedureHost – classes that expose a registry as methods
# ──────────────────────────────────────────────────────────────
class ProcedureHost:
    """
    Base for classes carrying generated procedure methods.

    Subclasses pick their table with ``class X(ProcedureHost, procedures=reg)``
    and must implement ``_invoke(spec, params, callback)``.
    """

    procedures: ProcedureRegistry | None = None

    def __init_subclass__(cls, procedures: ProcedureRegistry | None = None, **kwargs: Any):
        super().__init_subclass__(**kwargs)
        if procedures is not None:
            cls.procedures = procedures
            procedures.install(cls)

    def _invoke(self, spec: ProcedureSpec, params: Iterable[Any], callback: Any) -> Any:
        raise NotImplementedError


DEFAULT_PROCEDURES = ProcedureRegistry("bitcoind", BITCOIND_CALLSPEC)
