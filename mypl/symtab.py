"""Scoped symbol table shared by the type checker and the interpreter.

Each environment has an integer id and a link to the environment that was
current when it was pushed. Lookup walks those links outward to the global
environment. The interpreter jumps the current environment to the global one
for a function call and restores the caller's id afterward.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

P = TypeVar("P")


@dataclass
class Environment(Generic[P]):
    env_id: int
    parent_id: int | None
    bindings: dict[str, P] = field(default_factory=dict)


class SymbolTable(Generic[P]):
    def __init__(self) -> None:
        self.environments: dict[int, Environment[P]] = {}
        self.current_id: int | None = None
        self._next_id: int = 0

    # ── Environments ─────────────────────────────────────────

    def push_environment(self) -> int:
        env: Environment[P] = Environment(self._next_id, self.current_id)
        self._next_id += 1
        self.environments[env.env_id] = env
        self.current_id = env.env_id
        return env.env_id

    def pop_environment(self) -> None:
        env = self._current()
        del self.environments[env.env_id]
        self.current_id = env.parent_id

    def get_environment_id(self) -> int | None:
        return self.current_id

    def set_environment_id(self, env_id: int) -> None:
        if env_id not in self.environments:
            raise KeyError("no environment with id " + str(env_id))
        self.current_id = env_id

    def depth(self) -> int:
        n = 0
        env_id = self.current_id
        while env_id is not None:
            n += 1
            env_id = self.environments[env_id].parent_id
        return n

    def _current(self) -> Environment[P]:
        if self.current_id is None:
            raise RuntimeError("symbol table has no environment")
        return self.environments[self.current_id]

    def _find(self, name: str) -> Environment[P] | None:
        env_id = self.current_id
        while env_id is not None:
            env = self.environments[env_id]
            if name in env.bindings:
                return env
            env_id = env.parent_id
        return None

    # ── Names ────────────────────────────────────────────────

    def add_name(self, name: str, payload: P) -> None:
        """Bind name in the current environment only."""
        self._current().bindings[name] = payload

    def name_exists(self, name: str) -> bool:
        return self._find(name) is not None

    def name_exists_in_curr_env(self, name: str) -> bool:
        return name in self._current().bindings

    def get(self, name: str) -> P:
        env = self._find(name)
        if env is None:
            raise KeyError(name)
        return env.bindings[name]

    def set(self, name: str, payload: P) -> None:
        """Rebind name in the innermost environment where it is visible."""
        env = self._find(name)
        if env is None:
            raise KeyError(name)
        env.bindings[name] = payload

    def get_in(self, env_id: int, name: str) -> P | None:
        """Look name up in env_id alone, ignoring enclosing environments."""
        return self.environments[env_id].bindings.get(name)

    def set_in(self, env_id: int, name: str, payload: P) -> None:
        self.environments[env_id].bindings[name] = payload
