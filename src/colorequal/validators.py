"""
Validation decorators for colorequal pipelines.

Provides reusable validation logic for parameter checking across the
equalizer builder.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

from colorequal.constants import NODE_NAMES, NODES

# Type alias for callables
F = Callable[..., Any]


def _get_arg(args: tuple, kwargs: dict, param_name: str, param_index: int) -> tuple[bool, Any]:
    """Fetch a parameter value from positional or keyword arguments."""
    if len(args) > param_index:
        return True, args[param_index]
    if param_name in kwargs:
        return True, kwargs[param_name]
    return False, None


def validate_range(
    min_val: float,
    max_val: float,
    param_name: str = "value",
    param_index: int = 1,
) -> Callable[[F], F]:
    """
    Decorator for validating numeric parameter ranges.

    Args:
        min_val: Minimum allowed value (inclusive)
        max_val: Maximum allowed value (inclusive)
        param_name: Name of parameter for error messages
        param_index: Position of parameter in function signature (default: 1 = first arg after self)

    Returns:
        Decorated function with range validation

    Example:
        >>> @validate_range(-23.0, 23.0, 'hue_shift')
        ... def hue_shift(self, degrees: float) -> Self:
        ...     self._hue_shift = degrees
        ...     return self
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            found, value = _get_arg(args, kwargs, param_name, param_index)
            if not found:
                # No value provided, let function handle it
                return func(*args, **kwargs)

            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise TypeError(
                    f"{param_name} must be a number, got {type(value).__name__}. "
                    f"Provide a numeric value (int or float)."
                )

            if not min_val <= value <= max_val:
                # Provide helpful suggestions based on the parameter name
                suggestion = ""
                if "saturation" in param_name or "brightness" in param_name:
                    suggestion = " Use 1.0 for no change, >1.0 to increase, <1.0 to decrease."
                elif param_name == "hue":
                    suggestion = " Use 0.0 for no hue offset."
                elif param_name == "white_level":
                    suggestion = " The white level is an exposure in EV, 1.0 is the default."
                elif param_name == "hue_shift":
                    suggestion = " Node placement shifts are limited to half the node spacing."

                raise ValueError(
                    f"{param_name}={value} is outside valid range [{min_val}, {max_val}].{suggestion}"
                )

            return func(*args, **kwargs)

        return wrapper  # type: ignore

    return decorator


def validate_positive(param_name: str = "value", param_index: int = 1) -> Callable[[F], F]:
    """
    Decorator for validating positive numeric parameters.

    Args:
        param_name: Name of parameter for error messages
        param_index: Position of parameter in function signature

    Returns:
        Decorated function with positive validation

    Example:
        >>> @validate_positive('scale')
        ... def apply(self, image, scale: float = 1.0):
        ...     ...
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            found, value = _get_arg(args, kwargs, param_name, param_index)
            if not found:
                return func(*args, **kwargs)

            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise TypeError(
                    f"{param_name} must be a number, got {type(value).__name__}. "
                    f"Provide a numeric value (int or float)."
                )

            if value <= 0:
                suggestion = ""
                if "scale" in param_name:
                    suggestion = " The scale relates filter radii to pixels, use 1.0 at full resolution."
                raise ValueError(f"{param_name}={value} must be positive (> 0).{suggestion}")

            return func(*args, **kwargs)

        return wrapper  # type: ignore

    return decorator


def validate_type(
    expected_type: type | tuple[type, ...],
    param_name: str = "value",
    param_index: int = 1,
) -> Callable[[F], F]:
    """
    Decorator for validating parameter types.

    Args:
        expected_type: Expected type or tuple of types
        param_name: Name of parameter for error messages
        param_index: Position of parameter in function signature

    Returns:
        Decorated function with type validation

    Example:
        >>> @validate_type(bool, 'enabled')
        ... def use_filter(self, enabled: bool) -> Self:
        ...     ...
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            found, value = _get_arg(args, kwargs, param_name, param_index)
            if not found:
                return func(*args, **kwargs)

            if not isinstance(value, expected_type):
                if isinstance(expected_type, tuple):
                    type_names = ", ".join(t.__name__ for t in expected_type)
                    raise TypeError(
                        f"{param_name} must be one of ({type_names}), got {type(value).__name__}"
                    )
                else:
                    raise TypeError(
                        f"{param_name} must be {expected_type.__name__}, got {type(value).__name__}"
                    )

            return func(*args, **kwargs)

        return wrapper  # type: ignore

    return decorator


def validate_choices(
    valid_choices: set[str],
    param_name: str = "value",
    param_index: int = 1,
) -> Callable[[F], F]:
    """
    Decorator for validating parameter choices.

    Args:
        valid_choices: Set of valid string choices
        param_name: Name of parameter for error messages
        param_index: Position of parameter in function signature

    Returns:
        Decorated function with choice validation

    Example:
        >>> @validate_choices({'hue', 'saturation', 'brightness'}, 'channel')
        ... def curve(self, channel: str) -> np.ndarray:
        ...     ...
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            found, value = _get_arg(args, kwargs, param_name, param_index)
            if not found:
                return func(*args, **kwargs)

            if value not in valid_choices:
                choices_str = ", ".join(sorted(valid_choices))
                raise ValueError(
                    f"{param_name}='{value}' is not valid. Valid options are: {choices_str}"
                )

            return func(*args, **kwargs)

        return wrapper  # type: ignore

    return decorator


def resolve_node(node: int | str) -> int:
    """
    Resolve a node reference (octant index or name) to its index.

    Args:
        node: Octant index 0-7 or one of NODE_NAMES

    Returns:
        Node index in [0, NODES)

    Raises:
        ValueError: If the index or name is unknown
        TypeError: If node is neither int nor str

    Example:
        >>> resolve_node("cyan")
        4
    """
    if isinstance(node, str):
        try:
            return NODE_NAMES.index(node.lower())
        except ValueError:
            raise ValueError(
                f"node='{node}' is not valid. Valid names are: {', '.join(NODE_NAMES)}"
            ) from None

    if isinstance(node, bool) or not isinstance(node, int):
        raise TypeError(f"node must be an int index or a name, got {type(node).__name__}")

    if not 0 <= node < NODES:
        raise ValueError(f"node={node} is outside valid range [0, {NODES - 1}].")
    return node
