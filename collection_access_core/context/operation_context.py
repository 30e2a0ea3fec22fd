"""
Operation context for handling cross-cutting concerns.

Service entry points are wrapped with ``@operation()`` which logs ENTER, EXIT
and ERROR lines carrying the operation id, correlation id, acting user and
duration.
"""

import time
import uuid
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Dict, Optional, TypeVar, Union, cast

from ..exceptions import BaseError, clear_correlation_id, get_correlation_id, set_correlation_id
from ..utils.logger import ContextAwareLogger, get_logger
from .user_context import UserContext


class OperationContext:
    """Context for a specific operation."""

    def __init__(self, operation_name: str, correlation_id: Optional[str] = None, **context):
        self.operation_name = operation_name
        self.operation_id = str(uuid.uuid4())

        # Child operations inherit the correlation id of the outermost one
        self.correlation_id = correlation_id or get_correlation_id() or str(uuid.uuid4())
        set_correlation_id(self.correlation_id)

        self.context = context
        self.context["operation_id"] = self.operation_id
        self.context["correlation_id"] = self.correlation_id

        self.start_time = time.time()
        self.metrics: Dict[str, Union[int, float]] = {}

    @property
    def duration_ms(self) -> float:
        """Get the operation duration in milliseconds."""
        return (time.time() - self.start_time) * 1000

    def add_context(self, **kwargs) -> None:
        self.context.update(kwargs)

    def add_metric(self, name: str, value: Union[int, float]) -> None:
        self.metrics[name] = value


class OperationHandler:
    """Handles operation logging and error enrichment."""

    def __init__(self, logger: Optional[ContextAwareLogger] = None):
        self.logger = logger if logger is not None else get_logger()

    @contextmanager
    def operation(self, name: str, **context):
        """Context manager for operations."""
        user_id = UserContext.get_current_user_id()
        if user_id and "user_id" not in context:
            context["user_id"] = user_id

        outermost = get_correlation_id() is None
        op_ctx = OperationContext(name, **context)
        ids = {"operation_id": op_ctx.operation_id, "correlation_id": op_ctx.correlation_id}

        self.logger.info(f"ENTER: {name}", extra={**context, **ids})

        try:
            yield op_ctx

            self.logger.info(
                f"EXIT: {name}",
                extra={
                    **context,
                    **ids,
                    "duration_ms": op_ctx.duration_ms,
                    "status": "success",
                    **op_ctx.metrics,
                },
            )

        except BaseError as e:
            e.add_context(
                operation_name=name,
                operation_id=op_ctx.operation_id,
                operation_duration_ms=op_ctx.duration_ms,
            )

            # BaseError already logged itself; this line ties it to the operation
            self.logger.error(
                f"ERROR: {name} -> {e.error_code.value}: {e.message}",
                extra={
                    **context,
                    **ids,
                    "duration_ms": op_ctx.duration_ms,
                    "error_id": e.error_id,
                    "error_code": e.error_code.value,
                    "status": "error",
                },
            )
            raise

        except Exception as e:
            self.logger.exception(
                f"ERROR: {name} -> {type(e).__name__}: {str(e)}",
                extra={
                    **context,
                    **ids,
                    "duration_ms": op_ctx.duration_ms,
                    "error_type": type(e).__name__,
                    "status": "error",
                },
            )
            raise

        finally:
            if outermost:
                clear_correlation_id()


F = TypeVar("F", bound=Callable[..., Any])


def operation(name: Union[Optional[str], Callable] = None):
    """
    Decorator for operations.

    Args:
        name: Optional operation name. If not provided, a name is generated
             from the module, class and function names.
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            if name is not None:
                op_name = name
            else:
                op_name = func.__name__
                if args and hasattr(args[0], "__class__"):
                    op_name = f"{args[0].__class__.__name__}.{op_name}"
                op_name = f"{func.__module__.split('.')[-1]}.{op_name}"

            # Arguments are never logged; they can carry credentials
            context: Dict[str, Any] = {"source_module": func.__module__}
            if args and hasattr(args[0], "__class__"):
                context["class"] = args[0].__class__.__name__

            handler = OperationHandler()
            with handler.operation(op_name, **context):
                return func(*args, **kwargs)

        return cast(F, wrapper)

    # Used without parentheses
    if callable(name):
        func, name = name, None
        return decorator(func)

    return decorator
