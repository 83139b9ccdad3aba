"""Tests for the upload client and API helpers."""

import json
from unittest.mock import patch

import pytest
import requests
import responses

from ascella.config import Config
from ascella.errors import ConfigInvalid, InvalidResponse, NetworkFailure
from ascella.uploader import (
    UploadResponse,
    build_headers,
    create_session,
    files_request,
    me_request,
    parse_files,
    parse_user,
    upload,
    user_agent,
)

UPLOAD_URL = "https://api.test/upload"
UPLOAD_BODY = {"url": "https://x/y", "delete": "https://x/y/d", "metadata": "m"}


class TestUploadResponse:
    """Tests for UploadResponse.from_json()."""

    def test_parses_fields(self):
        result = UploadResponse.from_json(json.dumps(UPLOAD_BODY))
        assert result.url == "https://x/y"
        assert result.delete_url == "https://x/y/d"
        assert result.metadata == "m"

    @pytest.mark.parametrize(
        "body",
        ["<html>502</html>", "[]", json.dumps({"url": "https://x/y"}), json.dumps({**UPLOAD_BODY, "url": 1})],
    )
    def test_rejects_bad_bodies(self, body):
        with pytest.raises(InvalidResponse):
            UploadResponse.from_json(body)


class TestBuildHeaders:
    """Tests for build_headers()."""

    def test_merges_token(self):
        config = Config(api_key="secret", headers={"X-Foo": "bar"})
        assert build_headers(config) == {"X-Foo": "bar", "ascella-token": "secret"}

    def test_no_token_without_key(self):
        assert build_headers(Config(headers={"X-Foo": "bar"})) == {"X-Foo": "bar"}

    @pytest.mark.parametrize(
        "name,value",
        [
            ("Bad Header", "x"),
            ("X-Foo", "line\nbreak"),
            ("X-Foo", "carriage\rreturn"),
            ("X-Foo", " leading"),
            ("X-Foo", "snow☃"),
        ],
    )
    def test_drops_invalid_headers(self, name, value):
        config = Config(api_key="k", headers={name: value, "X-Ok": "1"})
        assert build_headers(config) == {"X-Ok": "1", "ascella-token": "k"}

    def test_keeps_tabs_and_empty_values(self):
        config = Config(headers={"X-Tab": "a\tb", "X-Empty": ""})
        assert build_headers(config) == {"X-Tab": "a\tb", "X-Empty": ""}

    def test_invalid_key_raises(self):
        with pytest.raises(ConfigInvalid):
            build_headers(Config(api_key="bad\nkey"))


class TestSession:
    def test_user_agent(self):
        assert user_agent().startswith("Ascella-uploader/")
        assert create_session().headers["User-Agent"] == user_agent()


class TestUpload:
    """Tests for upload()."""

    def setup_method(self):
        self.config = Config(api_key="secret", request_url=UPLOAD_URL, headers={"X-Foo": "bar"})
        self.session = requests.Session()

    def teardown_method(self):
        self.session.close()

    @responses.activate
    @patch("ascella.uploader.send_notification")
    @patch("ascella.uploader.publish")
    def test_success(self, mock_publish, mock_notify, capsys):
        responses.add(responses.POST, UPLOAD_URL, json=UPLOAD_BODY, status=200)

        result = upload(b"\x89PNG", "shot.png", self.config, self.session, print_result=True)

        assert result.url == "https://x/y"
        request = responses.calls[0].request
        assert request.headers["ascella-token"] == "secret"
        assert request.headers["X-Foo"] == "bar"
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        assert b'name="file"; filename="shot.png"' in request.body
        assert b"Content-Type: image/png" in request.body

        mock_publish.assert_called_once_with("https://x/y")
        mock_notify.assert_called_once()
        out = capsys.readouterr().out
        assert "Image uploaded https://x/y" in out
        assert "Delete URL: https://x/y/d" in out

    @responses.activate
    @patch("ascella.uploader.send_notification")
    @patch("ascella.uploader.publish")
    def test_quiet_without_print_and_notifications(self, mock_publish, mock_notify, capsys):
        responses.add(responses.POST, UPLOAD_URL, json=UPLOAD_BODY, status=200)
        self.config.notifications_enabled = False

        upload(b"data", "shot.png", self.config, self.session)

        assert capsys.readouterr().out == ""
        mock_notify.assert_not_called()
        mock_publish.assert_called_once()

    @responses.activate
    @patch("ascella.uploader.publish")
    def test_http_error_status(self, mock_publish):
        responses.add(responses.POST, UPLOAD_URL, body="Unauthorized", status=401)

        with pytest.raises(InvalidResponse) as exc_info:
            upload(b"data", "shot.png", self.config, self.session)

        assert exc_info.value.status == 401
        mock_publish.assert_not_called()

    @responses.activate
    @patch("ascella.uploader.publish")
    def test_unparsable_body(self, mock_publish):
        responses.add(responses.POST, UPLOAD_URL, body="oops", status=200)

        with pytest.raises(InvalidResponse):
            upload(b"data", "shot.png", self.config, self.session)
        mock_publish.assert_not_called()

    @responses.activate
    @patch("ascella.uploader.publish")
    def test_connection_error(self, mock_publish):
        responses.add(
            responses.POST, UPLOAD_URL, body=requests.exceptions.ConnectionError("refused")
        )

        with pytest.raises(NetworkFailure):
            upload(b"data", "shot.png", self.config, self.session)
        mock_publish.assert_not_called()


class TestApiRequests:
    """Tests for the /me endpoints."""

    def test_me_request(self):
        config = Config(api_url="https://api.test/v3/", api_key="secret")
        prepared = requests.Session().prepare_request(me_request(config))

        assert prepared.method == "GET"
        assert prepared.url == "https://api.test/v3/me"
        assert prepared.headers["ascella-token"] == "secret"

    def test_files_request(self):
        config = Config(api_url="https://api.test/v3", api_key="secret")
        prepared = requests.Session().prepare_request(files_request(config, 2))

        assert prepared.url == "https://api.test/v3/me/files?page=2"

    def test_parse_user(self):
        body = json.dumps({
            "success": True,
            "data": {"id": 7, "name": "tricked", "email": "t@x", "uuid": "u-1", "upload_limit": 1000},
        }).encode()

        user = parse_user(body)
        assert user.id == 7
        assert user.name == "tricked"
        assert user.upload_limit == 1000

    def test_parse_user_failure_envelope(self):
        body = json.dumps({"success": False, "message": "Invalid token", "data": None}).encode()
        with pytest.raises(InvalidResponse, match="Invalid token"):
            parse_user(body)

    def test_parse_user_bad_record(self):
        with pytest.raises(InvalidResponse):
            parse_user(json.dumps({"data": {"name": "no id"}}).encode())

    def test_parse_files(self):
        body = json.dumps({
            "data": [
                {"name": "a.png", "vanity": "abc", "raw": "https://x/abc.png"},
                {"name": "b.png", "vanity": "def"},
            ]
        }).encode()

        files = parse_files(body)
        assert [f.name for f in files] == ["a.png", "b.png"]
        assert files[1].raw == ""

    def test_parse_files_empty_page(self):
        assert parse_files(b'{"data": []}') == []

    def test_parse_files_not_json(self):
        with pytest.raises(InvalidResponse):
            parse_files(b"<html>")
