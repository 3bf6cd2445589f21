"""Test helpers (small, reusable record types and doubles).

Keep this file tiny and purpose-built: it exists so suites share one set of
record shapes instead of defining near-identical classes per file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel


@dataclass
class Person:
    name: str
    age: int
    active: bool
    email: str | None = None


@dataclass
class Order:
    id: int
    total: Decimal
    shipped: bool


class Status(Enum):
    NEW = "new"
    DONE = "done"


@dataclass
class Task:
    title: str
    status: Status
    score: float


@dataclass(frozen=True)
class Address:
    street: str
    city: str


@dataclass
class Customer:
    name: str
    address: Address
    tags: list[str] = field(default_factory=list)


class Product(BaseModel):
    sku: str
    price: float
    in_stock: bool


class LegacyRecord:
    """Plain class described by class-level annotations."""

    code: str
    count: int

    def __init__(self, code: str = "", count: int = 0) -> None:
        self.code = code
        self.count = count

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, LegacyRecord)
            and (self.code, self.count) == (other.code, other.count)
        )


class Point:
    """Plain class with nothing but constructor parameters."""

    def __init__(self, x, y):
        self.x = x
        self.y = y


class Temperature:
    """Property-based class with one read-only property."""

    def __init__(self) -> None:
        self._celsius = 0.0

    @property
    def celsius(self) -> float:
        return self._celsius

    @celsius.setter
    def celsius(self, value: float) -> None:
        self._celsius = value

    @property
    def fahrenheit(self) -> float:
        return self._celsius * 9 / 5 + 32


@dataclass
class ScriptedOperation:
    """Async factory that returns/raises a scripted sequence of outcomes."""

    script: list[Any] = field(default_factory=list)
    calls: int = 0

    async def __call__(self) -> Any:
        self.calls += 1
        if not self.script:
            return "ok"
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item
