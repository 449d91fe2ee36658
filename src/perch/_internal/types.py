"""Shared type aliases used across perch modules."""

from collections.abc import Callable, Mapping
from typing import Any, TypeAlias

# Store reducer: (state, payload) -> next state
Reducer: TypeAlias = Callable[[Any, Any], Any]

# Zero-argument cleanup callback kept in ``meta.unsubscribe_list``
Unsubscribe: TypeAlias = Callable[[], None]

# Error hook: receives (error, phase) where phase is controller/model/view
ErrorReporter: TypeAlias = Callable[[BaseException, str], Any]

# Declared preload table: resource name -> relative asset path
PreloadTable: TypeAlias = Mapping[str, str]
