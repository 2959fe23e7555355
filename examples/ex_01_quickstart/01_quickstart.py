"""Quickstart: bind abstractions, build a resolver, and get wired objects.

Register a shared settings value and an implementation type, then let
graphwire build the implementation with its ``@inject`` initializer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from graphwire import Registry, inject


class Settings:
    def __init__(self, greeting: str) -> None:
        self.greeting = greeting


class Greeter(ABC):
    @abstractmethod
    def greet(self, name: str) -> str: ...


class SettingsGreeter(Greeter):
    @inject
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def greet(self, name: str) -> str:
        return f"{self.settings.greeting}, {name}!"


def main() -> None:
    settings = Settings(greeting="Hello")

    registry = Registry()
    registry.bind_type(Greeter, SettingsGreeter)
    registry.bind_instance(Settings, settings)
    resolver = registry.build_resolver()

    greeter = resolver.get(Greeter)
    assert isinstance(greeter, SettingsGreeter)

    print(greeter.greet("world"))  # => Hello, world!
    print(f"shared_settings={greeter.settings is settings}")  # => shared_settings=True
    print(f"fresh_instance={resolver.get(Greeter) is not greeter}")  # => fresh_instance=True
    print(f"unbound={resolver.get(int)}")  # => unbound=None


if __name__ == "__main__":
    main()
