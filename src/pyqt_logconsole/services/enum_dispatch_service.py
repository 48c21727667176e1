"""
Base class for enum-keyed dispatch.

A subclass registers one handler per enum member and decides which member
an input maps to; dispatch() does the lookup and call.

Example:
    class Command(Enum):
        OPEN = "open"
        CLOSE = "close"

    class Router(EnumDispatchService[Command]):
        def __init__(self):
            super().__init__()
            self._register_handlers({
                Command.OPEN: self._handle_open,
                Command.CLOSE: self._handle_close,
            })

        def _determine_strategy(self, message) -> Command:
            return message.command
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, TypeVar

logger = logging.getLogger(__name__)

StrategyEnum = TypeVar('StrategyEnum', bound=Enum)


class EnumDispatchService(ABC, Generic[StrategyEnum]):
    """Handler registry keyed by enum member."""

    def __init__(self):
        self._handlers: Dict[StrategyEnum, Callable] = {}

    def _register_handlers(self, handlers: Dict[StrategyEnum, Callable]) -> None:
        """
        Register handlers.

        Raises:
            ValueError: If handlers is empty
        """
        if not handlers:
            raise ValueError(f"{self.__class__.__name__}: Handler registry cannot be empty")
        self._handlers = handlers
        logger.debug(f"{self.__class__.__name__}: Registered {len(handlers)} handlers")

    @abstractmethod
    def _determine_strategy(self, message: Any) -> StrategyEnum:
        """Map an input to the enum member whose handler should run."""

    def dispatch(self, message: Any) -> Any:
        """
        Route one input to its handler; the handler receives the input.

        Raises:
            KeyError: If no handler is registered for the input's member
        """
        strategy = self._determine_strategy(message)
        if strategy not in self._handlers:
            raise KeyError(
                f"{self.__class__.__name__}: No handler registered for {strategy}. "
                f"Available: {list(self._handlers.keys())}"
            )
        logger.debug(f"{self.__class__.__name__}: Dispatching {strategy.value}")
        return self._handlers[strategy](message)

    def get_registered_strategies(self) -> List[StrategyEnum]:
        return list(self._handlers.keys())

    def has_strategy(self, strategy: StrategyEnum) -> bool:
        return strategy in self._handlers
