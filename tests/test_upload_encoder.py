"""
Тесты UploadEncoder: тип изображения, валидация черновика, выбор и отправка
"""

import base64
from unittest.mock import MagicMock

import pytest
import requests

from bookworm_client.api_client import APIClient
from bookworm_client.constants import MSG_NON_JSON_RESPONSE, MSG_PERMISSION_DENIED
from bookworm_client.core.exceptions import PermissionDeniedError, ProtocolError, ValidationError
from bookworm_client.core.upload_encoder import UploadEncoder, image_type_from_uri
from bookworm_client.models.upload import CapturedImage, PickedAsset, PickerOptions, PickResult
from conftest import FakeBooksAPI, make_response

PAYLOAD = base64.b64encode(b"image-bytes").decode("ascii")


class FakePicker:
    def __init__(self, granted=True, result=None):
        self.granted = granted
        self.result = result or PickResult(canceled=True)
        self.options = None

    async def request_permission(self):
        return self.granted

    async def pick_image(self, options):
        self.options = options
        return self.result


class FakeReader:
    def __init__(self, payload):
        self.payload = payload
        self.uris = []

    async def read_base64(self, uri):
        self.uris.append(uri)
        return self.payload


@pytest.mark.parametrize(
    "uri, expected",
    [
        ("file:///photos/Cover.PNG", "png"),
        ("file:///photos/cover.jpg", "jpg"),
        ("file:///photos/cover.webp", "webp"),
        ("file:///photos/cover", "jpeg"),
        ("content://media/external/images/42", "jpeg"),
        ("https://cdn.test/image.gif?size=large", "gif"),
        ("/tmp/picked.heic", "heic"),
        (None, "jpeg"),
    ],
)
def test_image_type_from_uri(uri, expected):
    assert image_type_from_uri(uri) == expected


def test_build_payload_makes_data_url():
    encoder = UploadEncoder(FakeBooksAPI())

    payload = encoder.build_payload("Dune", "Spice", 5, "file:///x/cover.PNG", PAYLOAD)

    assert payload.mime_type == "image/png"
    assert payload.image_data_url == f"data:image/png;base64,{PAYLOAD}"
    assert payload.to_request_body() == {
        "title": "Dune",
        "caption": "Spice",
        "rating": "5",
        "image": f"data:image/png;base64,{PAYLOAD}",
    }


def test_build_payload_without_extension_defaults_to_jpeg():
    encoder = UploadEncoder(FakeBooksAPI())

    payload = encoder.build_payload("Dune", "Spice", 3, "content://media/1", PAYLOAD)

    assert payload.image_data_url.startswith("data:image/jpeg;base64,")


@pytest.mark.parametrize(
    "title, caption, rating, image, field",
    [
        ("", "", 3, None, "title"),
        ("Dune", "", 3, None, "caption"),
        ("Dune", "Spice", 3, None, "image"),
        ("Dune", "Spice", 0, PAYLOAD, "rating"),
        ("Dune", "Spice", 6, PAYLOAD, "rating"),
        ("Dune", "Spice", -1, PAYLOAD, "rating"),
    ],
)
def test_build_payload_reports_first_missing_field(title, caption, rating, image, field):
    encoder = UploadEncoder(FakeBooksAPI())

    with pytest.raises(ValidationError) as exc_info:
        encoder.build_payload(title, caption, rating, "file:///c.png", image)

    assert exc_info.value.field == field


@pytest.mark.asyncio
async def test_capture_denied_permission():
    encoder = UploadEncoder(FakeBooksAPI(), picker=FakePicker(granted=False))

    with pytest.raises(PermissionDeniedError) as exc_info:
        await encoder.capture_image()

    assert exc_info.value.message == MSG_PERMISSION_DENIED


@pytest.mark.asyncio
async def test_capture_canceled_returns_none():
    encoder = UploadEncoder(FakeBooksAPI(), picker=FakePicker(result=PickResult(canceled=True)))

    assert await encoder.capture_image() is None


@pytest.mark.asyncio
async def test_capture_uses_inline_base64_and_picker_options():
    picker = FakePicker(result=PickResult(assets=[PickedAsset(uri="file:///c.png", base64=PAYLOAD)]))
    reader = FakeReader("unused")
    encoder = UploadEncoder(FakeBooksAPI(), picker=picker, file_reader=reader)

    captured = await encoder.capture_image()

    assert captured == CapturedImage(uri="file:///c.png", base64=PAYLOAD)
    assert reader.uris == []
    assert picker.options == PickerOptions()
    assert picker.options.aspect == (4, 3)
    assert picker.options.quality == 0.5


@pytest.mark.asyncio
async def test_capture_falls_back_to_file_reader():
    picker = FakePicker(result=PickResult(assets=[PickedAsset(uri="file:///c.png")]))
    reader = FakeReader(PAYLOAD)
    encoder = UploadEncoder(FakeBooksAPI(), picker=picker, file_reader=reader)

    captured = await encoder.capture_image()

    assert captured.base64 == PAYLOAD
    assert reader.uris == ["file:///c.png"]


@pytest.mark.asyncio
async def test_capture_without_picker_is_misconfiguration():
    with pytest.raises(RuntimeError):
        await UploadEncoder(FakeBooksAPI()).capture_image()


@pytest.mark.asyncio
async def test_submit_sends_request_body():
    api = FakeBooksAPI()
    encoder = UploadEncoder(api)
    payload = encoder.build_payload("Dune", "Spice", 4, "file:///c.jpg", PAYLOAD)

    created = await encoder.submit(payload, "jwt")

    assert api.created == [payload.to_request_body()]
    assert created["title"] == "Dune"


@pytest.mark.asyncio
async def test_submit_non_json_error_surfaces_raw_text():
    http_session = MagicMock(spec=requests.Session)
    http_session.request.return_value = make_response(500, text="<html>Internal Server Error</html>")
    encoder = UploadEncoder(APIClient(base_url="http://api.test/api/", timeout=5, session=http_session))
    payload = encoder.build_payload("Dune", "Spice", 4, "file:///c.jpg", PAYLOAD)

    with pytest.raises(ProtocolError) as exc_info:
        await encoder.submit(payload, "jwt")

    assert exc_info.value.message == MSG_NON_JSON_RESPONSE
    assert exc_info.value.raw_text == "<html>Internal Server Error</html>"
    _, kwargs = http_session.request.call_args
    assert kwargs["json"]["rating"] == "4"
    assert kwargs["headers"]["Authorization"] == "Bearer jwt"
