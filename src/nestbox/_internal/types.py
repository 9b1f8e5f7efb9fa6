"""Shared type aliases used across nestbox modules."""

from collections.abc import Callable
from typing import BinaryIO, TextIO, TypeAlias

# Opens a fresh binary stream over one packaged resource
Opener: TypeAlias = Callable[[], BinaryIO]

# Opens a fresh text stream over one view resource
TextOpener: TypeAlias = Callable[[], TextIO]

# Deferred body: writes the payload into the given sink when invoked
ContentWriter: TypeAlias = Callable[[BinaryIO], None]
