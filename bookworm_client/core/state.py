"""
Контейнер состояния с подпиской на изменения.

Состояние хранится как неизменяемый снимок (pydantic модель). Менять его
может только владелец через _set(), остальные читают snapshot и подписываются.
"""

import logging
from typing import Any, Callable, Generic, List, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

StateT = TypeVar("StateT", bound=BaseModel)
Listener = Callable[[StateT], None]


class ObservableState(Generic[StateT]):
    """Владеющий контейнер состояния с контрактом подписки/уведомления"""

    def __init__(self, initial: StateT):
        self._state = initial
        self._listeners: List[Listener] = []

    @property
    def snapshot(self) -> StateT:
        """Текущий снимок состояния"""
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Подписывает listener на новые снимки состояния.

        Returns:
            Функция отписки
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, **changes: Any) -> StateT:
        """Создает новый снимок с изменениями и уведомляет подписчиков"""
        self._state = self._state.model_copy(update=changes)
        self._notify()
        return self._state

    def _notify(self) -> None:
        state = self._state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error(
                    f"State listener {listener!r} failed: {e}",
                    exc_info=True,
                )
