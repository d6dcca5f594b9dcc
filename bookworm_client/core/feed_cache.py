"""
Кэш ленты с постраничной загрузкой (infinite scroll).

Страницы хранятся в порядке загрузки. Каждая загрузка привязана к поколению
кэша: refresh() и clear() увеличивают поколение, и ответы, пришедшие для
старого поколения, отбрасываются без отмены самих запросов.
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Optional, Sequence, Set

from pydantic import ValidationError as PydanticValidationError

from bookworm_client.config import get_settings
from bookworm_client.constants import (
    FIRST_PAGE,
    MSG_GENERIC_ERROR,
    MSG_MALFORMED_RESPONSE,
    NO_MORE_PAGES,
)
from bookworm_client.core.exceptions import AppException, ProtocolError
from bookworm_client.core.state import ObservableState
from bookworm_client.models.feed import FeedItem, FeedPage, FeedState
from bookworm_client.models.results import OperationResult

if TYPE_CHECKING:
    from bookworm_client.api_client import APIClient

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Optional[str]]
Clock = Callable[[], float]


def next_page_param(last_page: FeedPage, fetched_pages: Sequence[FeedPage]) -> Optional[int]:
    """
    Курсор следующей страницы.

    Args:
        last_page: Последняя загруженная страница (источник totalPages)
        fetched_pages: Все загруженные страницы

    Returns:
        Номер следующей страницы или NO_MORE_PAGES
    """
    fetched = len(fetched_pages)
    if fetched < last_page.total_pages:
        return fetched + 1
    return NO_MORE_PAGES


def flatten(pages: Iterable[FeedPage]) -> List[FeedItem]:
    """Записи всех страниц в порядке загрузки; повторный id сохраняет первое вхождение"""
    seen: Set[str] = set()
    items: List[FeedItem] = []
    for page in pages:
        for item in page.books:
            if item.id in seen:
                continue
            seen.add(item.id)
            items.append(item)
    return items


@dataclass(frozen=True)
class CachedPage:
    page: FeedPage
    fetched_at: float

    def is_stale(self, now: float, stale_time: float) -> bool:
        return now - self.fetched_at >= stale_time


class FeedCache(ObservableState[FeedState]):
    """Постраничный кэш ленты со стратегией stale-but-available"""

    def __init__(
        self,
        api_client: "APIClient",
        token_provider: TokenProvider,
        page_size: Optional[int] = None,
        stale_time: Optional[float] = None,
        clock: Clock = time.monotonic,
    ):
        """
        Args:
            api_client: HTTP клиент
            token_provider: Возвращает текущий bearer токен
            page_size: Размер страницы (по умолчанию из конфигурации)
            stale_time: Окно свежести страницы в секундах (по умолчанию из конфигурации)
            clock: Источник монотонного времени
        """
        super().__init__(FeedState())
        settings = get_settings()
        self.api_client = api_client
        self.page_size = page_size if page_size is not None else settings.feed_page_size
        self.stale_time = stale_time if stale_time is not None else settings.feed_stale_time_seconds
        self._token_provider = token_provider
        self._clock = clock

        self._pages: Dict[int, CachedPage] = {}
        self._last_page: Optional[FeedPage] = None
        self._generation = 0
        self._in_flight: Dict[int, asyncio.Task] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._error: Optional[AppException] = None
        self._refreshing = False

    # ==================== Чтение состояния ====================

    @property
    def pages(self) -> List[FeedPage]:
        return [cached.page for cached in self._pages.values()]

    @property
    def items(self) -> List[FeedItem]:
        return flatten(self.pages)

    @property
    def error(self) -> Optional[AppException]:
        return self._error

    @property
    def next_cursor(self) -> Optional[int]:
        """Курсор для load_more: первая страница, если ничего не загружено"""
        if self._last_page is None:
            return FIRST_PAGE
        return next_page_param(self._last_page, self.pages)

    @property
    def has_next_page(self) -> bool:
        return self._last_page is not None and self.next_cursor is not NO_MORE_PAGES

    @property
    def is_loading(self) -> bool:
        return not self._pages and FIRST_PAGE in self._in_flight

    @property
    def is_fetching_next_page(self) -> bool:
        cursor = self.next_cursor
        return cursor is not NO_MORE_PAGES and cursor != FIRST_PAGE and cursor in self._in_flight

    def shuffled(self, rng: Optional[random.Random] = None) -> List[FeedItem]:
        """Перемешанная копия записей, кэш не меняется"""
        items = self.items
        (rng or random).shuffle(items)
        return items

    def _publish(self) -> None:
        self._set(
            items=self.items,
            has_next_page=self.has_next_page,
            is_loading=self.is_loading,
            is_fetching_next_page=self.is_fetching_next_page,
            is_refreshing=self._refreshing,
            error_message=self._error.user_message if self._error else None,
        )

    def _result(self) -> OperationResult:
        if self._error is not None:
            return OperationResult.failure(self._error.user_message)
        return OperationResult.ok()

    # ==================== Загрузка ====================

    async def fetch_page(self, page: int, page_size: int, token: Optional[str]) -> FeedPage:
        """
        Загружает одну страницу ленты.

        Raises:
            NetworkError: Транспортная ошибка
            ServerError: Ответ не 2xx
            ProtocolError: Тело не JSON или не соответствует схеме
        """
        data = await self.api_client.get_books(page, page_size, token)
        try:
            return FeedPage.model_validate({**data, "page": page})
        except PydanticValidationError as e:
            logger.error(f"Malformed feed page {page}: {e}")
            raise ProtocolError(MSG_MALFORMED_RESPONSE, details={"page": page}) from e

    def _schedule_fetch(self, page: int) -> asyncio.Task:
        """Запускает загрузку страницы или возвращает уже идущую"""
        task = self._in_flight.get(page)
        if task is not None:
            return task

        registry = self._in_flight
        task = asyncio.create_task(self._run_fetch(page, self._generation, registry))
        registry[page] = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug(f"Fetching feed page {page} (generation {self._generation})")
        self._publish()
        return task

    async def _run_fetch(
        self,
        page: int,
        generation: int,
        registry: Dict[int, asyncio.Task],
    ) -> Optional[FeedPage]:
        try:
            result = await self.fetch_page(page, self.page_size, self._token_provider())
        except AppException as e:
            if generation == self._generation:
                logger.warning(f"Failed to fetch feed page {page}: {e.message}")
                self._error = e
            return None
        except Exception as e:
            logger.error(f"Unexpected error fetching feed page {page}: {e}", exc_info=True)
            if generation == self._generation:
                self._error = AppException(MSG_GENERIC_ERROR)
            return None
        else:
            if generation != self._generation:
                logger.info(f"Dropping feed page {page} from discarded generation {generation}")
                return None
            self._pages[page] = CachedPage(result, self._clock())
            self._last_page = result
            self._error = None
            logger.debug(f"Cached feed page {page}: {len(result.books)} items, totalPages={result.total_pages}")
            return result
        finally:
            if registry.get(page) is asyncio.current_task():
                del registry[page]
            if generation == self._generation:
                self._publish()

    def _revalidate_stale(self) -> None:
        now = self._clock()
        for page, cached in list(self._pages.items()):
            if cached.is_stale(now, self.stale_time):
                logger.debug(f"Feed page {page} is stale, refetching in background")
                self._schedule_fetch(page)

    async def read(self) -> List[FeedItem]:
        """
        Текущие записи ленты.

        Если кэш пуст, ждет загрузки первой страницы. Устаревшие страницы
        возвращаются сразу, их перезагрузка идет в фоне.
        """
        if not self._pages:
            await self._schedule_fetch(FIRST_PAGE)
            return self.items
        self._revalidate_stale()
        return self.items

    async def load_more(self) -> OperationResult:
        """Загружает следующую страницу, если она есть и еще не загружается"""
        cursor = self.next_cursor
        if cursor is NO_MORE_PAGES:
            logger.debug("No more feed pages to load")
            return OperationResult.ok()
        if cursor in self._in_flight:
            logger.debug(f"Feed page {cursor} already in flight, skipping")
            return OperationResult.ok()

        generation = self._generation
        result = await self._schedule_fetch(cursor)
        if result is None:
            if generation != self._generation:
                # Страница отброшена вместе со старым поколением, ее ошибки нет
                return OperationResult.ok()
            return self._result()
        return OperationResult.ok()

    async def refresh(self) -> OperationResult:
        """Отбрасывает все страницы и заново загружает первую"""
        self._generation += 1
        generation = self._generation
        self._pages.clear()
        self._last_page = None
        self._error = None
        self._in_flight = {}
        self._refreshing = True
        logger.info(f"Refreshing feed (generation {generation})")
        self._publish()
        try:
            await self._schedule_fetch(FIRST_PAGE)
        finally:
            if generation == self._generation:
                self._refreshing = False
                self._publish()
        return self._result()

    async def invalidate(self, page: int = FIRST_PAGE) -> None:
        """Помечает страницу устаревшей и запускает ее фоновую перезагрузку"""
        cached = self._pages.get(page)
        if cached is None:
            return
        self._pages[page] = replace(cached, fetched_at=float("-inf"))
        logger.info(f"Invalidated feed page {page}")
        self._schedule_fetch(page)

    def clear(self) -> None:
        """Сбрасывает кэш полностью (например, при выходе пользователя)"""
        self._generation += 1
        self._pages.clear()
        self._last_page = None
        self._error = None
        self._in_flight = {}
        self._refreshing = False
        self._publish()

    async def wait_for_pending(self) -> None:
        """Ждет завершения всех запущенных загрузок, включая отброшенные поколения"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
