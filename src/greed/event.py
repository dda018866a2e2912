import collections
from typing import Any, Callable

EventListener = Callable[..., Any]


class EventEmitter:
    """Named events with ordered listeners"""

    listeners: dict[str, list[EventListener]]

    def __init__(self):
        self.listeners = collections.defaultdict(list)

    def add_listener(
        self,
        name: str,
        fn: EventListener,
        prepend: bool = False,
    ) -> None:
        listeners = self.listeners[name]

        if prepend:
            listeners.insert(0, fn)
        else:
            listeners.append(fn)

    def emit(
        self,
        /,
        name: str,
        args: tuple[Any, ...],
    ) -> int:
        """Call the listeners of name with args, return how many were called"""
        listeners = tuple(self.listeners.get(name, ()))
        for fn in listeners:
            fn(*args)
        return len(listeners)
