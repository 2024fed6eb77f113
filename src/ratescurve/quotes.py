"""
Live market quotes.

A Quote holds the current value of one market observable and notifies
registered observers when that value changes. Observers only learn that a
change happened; deciding whether to rebuild a curve is up to them.
"""

from typing import Callable, List, Union
import math


QuoteObserver = Callable[["SimpleQuote"], None]


class SimpleQuote:
    """
    A mutable market quote with a value-changed signal.

    Attributes:
        value: Current quote value (finite float)
    """

    def __init__(self, value: float):
        self._value = _check_finite(value)
        self._observers: List[QuoteObserver] = []

    @property
    def value(self) -> float:
        """Current value of the quote."""
        return self._value

    def set_value(self, value: float) -> float:
        """
        Set a new value, notifying observers if it changed.

        Returns:
            The change from the previous value
        """
        value = _check_finite(value)
        diff = value - self._value
        if diff != 0.0:
            self._value = value
            for observer in list(self._observers):
                observer(self)
        return diff

    def add_observer(self, observer: QuoteObserver) -> None:
        """Register a callback fired with this quote after each change."""
        if observer not in self._observers:
            self._observers.append(observer)

    def remove_observer(self, observer: QuoteObserver) -> None:
        """Unregister a callback; unknown callbacks are ignored."""
        if observer in self._observers:
            self._observers.remove(observer)

    def __float__(self) -> float:
        return self._value

    def __repr__(self) -> str:
        return f"SimpleQuote({self._value!r})"


def as_quote(quote: Union[float, SimpleQuote]) -> SimpleQuote:
    """Wrap a plain number in a SimpleQuote; pass quotes through unchanged."""
    if isinstance(quote, SimpleQuote):
        return quote
    return SimpleQuote(float(quote))


def _check_finite(value: float) -> float:
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"Quote value must be finite, got {value}")
    return value


__all__ = [
    "SimpleQuote",
    "QuoteObserver",
    "as_quote",
]
