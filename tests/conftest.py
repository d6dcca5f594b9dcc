"""
Общие фикстуры и фейки для тестов клиента
"""

import asyncio
import json
from typing import Any, Dict, List, Optional, Tuple

import pytest
import requests

from bookworm_client.core.storage import MemoryKeyValueStore


def make_user(user_id: str = "u1", username: str = "reader", email: str = "a@b.com") -> Dict[str, Any]:
    return {
        "id": user_id,
        "username": username,
        "email": email,
        "profileImage": f"https://api.dicebear.com/{username}.svg",
    }


def make_book(book_id: str, title: Optional[str] = None, rating: int = 4) -> Dict[str, Any]:
    return {
        "_id": book_id,
        "title": title or f"Book {book_id}",
        "caption": f"Thoughts about {book_id}",
        "rating": rating,
        "image": f"https://res.cloudinary.com/demo/{book_id}.jpg",
        "createdAt": "2025-03-01T10:00:00.000Z",
        "user": {"username": "reader", "profileImage": "https://api.dicebear.com/reader.svg"},
    }


def make_response(
    status_code: int,
    json_body: Any = None,
    text: Optional[str] = None,
) -> requests.Response:
    """Настоящий requests.Response с заданным статусом и телом"""
    response = requests.Response()
    response.status_code = status_code
    if text is None:
        text = json.dumps(json_body)
    response._content = text.encode("utf-8")
    response.encoding = "utf-8"
    return response


class FakeClock:
    """Управляемое монотонное время"""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeBooksAPI:
    """
    Фейковый APIClient.

    Страницы можно "задержать" через hold(page) и отпустить через event.set();
    ошибки задаются одноразово через fail_next(page, exc).
    """

    def __init__(self, total_pages: int = 2, version: int = 1):
        self.total_pages = total_pages
        self.version = version
        self.calls: List[Tuple[int, int, Optional[str]]] = []
        self.gates: Dict[int, asyncio.Event] = {}
        self.errors: Dict[int, Exception] = {}
        self.auth_response: Dict[str, Any] = {"user": make_user(), "token": "token-123"}
        self.created: List[Dict[str, Any]] = []
        self.closed = False

    def hold(self, page: int) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[page] = event
        return event

    def fail_next(self, page: int, exc: Exception) -> None:
        self.errors[page] = exc

    def calls_for(self, page: int) -> int:
        return sum(1 for call in self.calls if call[0] == page)

    async def get_books(self, page: int, limit: int, token: Optional[str]) -> Dict[str, Any]:
        self.calls.append((page, limit, token))
        version = self.version
        gate = self.gates.get(page)
        if gate is not None:
            await gate.wait()
        error = self.errors.pop(page, None)
        if error is not None:
            raise error
        books = [
            make_book(f"{page}-{i}", title=f"Book {page}-{i} v{version}")
            for i in range(limit)
        ]
        return {"books": books, "totalPages": self.total_pages}

    async def register(self, username: str, email: str, password: str) -> Dict[str, Any]:
        return self.auth_response

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        return self.auth_response

    async def create_book(self, body: Dict[str, Any], token: Optional[str]) -> Dict[str, Any]:
        self.created.append(body)
        return {"_id": "new", **body}

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def storage() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def fake_api() -> FakeBooksAPI:
    return FakeBooksAPI()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
