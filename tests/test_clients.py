from unittest.mock import MagicMock, patch

import pytest

from ecom_studio.clients import StudioClient, SupabaseClient, build_filter_params
from ecom_studio.clients.supabase import SupabaseError
from ecom_studio.errors import ApiError, AuthenticationError


def fake_response(status=200, body=None, headers=None, content=b"x"):
    response = MagicMock()
    response.status_code = status
    response.ok = status < 400
    response.headers = headers or {}
    response.content = content if body is not None else b""
    if body is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = body
    return response


def test_build_filter_params():
    params = build_filter_params({
        "user_id": "u1",
        "is_favorite": True,
        "read_at": None,
        "amount": ("lt", 0),
        "created_at": [("gte", "a"), ("lte", "b")],
    })

    assert params == [
        ("user_id", "eq.u1"),
        ("is_favorite", "eq.true"),
        ("read_at", "is.null"),
        ("amount", "lt.0"),
        ("created_at", "gte.a"),
        ("created_at", "lte.b"),
    ]


class TestStudioClient:
    def test_requires_token(self):
        with pytest.raises(AuthenticationError, match="Not authenticated"):
            StudioClient("https://app.test", None).fetch_product_images("https://shop.test/p")

    @patch("ecom_studio.clients.studio.requests.post")
    def test_fetch_product_images(self, post):
        post.return_value = fake_response(body={"images": ["https://img.test/a.jpg", {"url": "https://img.test/b.jpg"}]})

        images = StudioClient("https://app.test/", "tok").fetch_product_images("https://shop.test/p")

        assert [i.url for i in images] == ["https://img.test/a.jpg", "https://img.test/b.jpg"]
        args, kwargs = post.call_args
        assert args[0] == "https://app.test/api/fetch-product-images"
        assert kwargs["json"] == {"productUrl": "https://shop.test/p"}
        assert kwargs["headers"]["Authorization"] == "Bearer tok"

    @patch("ecom_studio.clients.studio.requests.post")
    def test_error_body_becomes_api_error(self, post):
        post.return_value = fake_response(status=500, body={"error": "Could not fetch images from URL"})

        with pytest.raises(ApiError, match="Could not fetch images from URL") as exc:
            StudioClient("https://app.test", "tok").fetch_product_images("https://shop.test/p")
        assert exc.value.status_code == 500

    @patch("ecom_studio.clients.studio.requests.post")
    def test_unauthorized_status_check(self, post):
        post.return_value = fake_response(status=401, body={"error": "Unauthorized - Invalid token"})

        with pytest.raises(AuthenticationError):
            StudioClient("https://app.test", "tok").check_video_status("https://status.test/1", "R_1", "user-1")

    @patch("ecom_studio.clients.studio.requests.post")
    def test_status_body_must_be_object(self, post):
        post.return_value = fake_response(body=["processing"])

        with pytest.raises(ApiError, match="Unexpected status response"):
            StudioClient("https://app.test", "tok").check_video_status("https://status.test/1", "R_1", "user-1")

    @patch("ecom_studio.clients.studio.requests.post")
    def test_generate_video_result(self, post):
        post.return_value = fake_response(body={"status_url": "https://status.test/1"})
        payload = MagicMock()
        payload.to_dict.return_value = {"refNo": "R_1"}

        result = StudioClient("https://app.test", "tok").generate_video(payload)

        assert result.status_url == "https://status.test/1"
        assert not result.is_immediate


class TestSupabaseClient:
    @patch("ecom_studio.clients.supabase.requests.get")
    def test_select_params(self, get):
        get.return_value = fake_response(body=[{"id": "1"}])
        db = SupabaseClient("https://db.test/", "anon", access_token="tok")

        rows = db.select("user_files", filters={"user_id": "u1"}, order="created_at", desc=True, limit=5)

        assert rows == [{"id": "1"}]
        args, kwargs = get.call_args
        assert args[0] == "https://db.test/rest/v1/user_files"
        assert kwargs["params"] == [
            ("select", "*"), ("user_id", "eq.u1"), ("order", "created_at.desc"), ("limit", "5"),
        ]
        assert kwargs["headers"]["Authorization"] == "Bearer tok"
        assert kwargs["headers"]["apikey"] == "anon"

    @patch("ecom_studio.clients.supabase.requests.get")
    def test_select_one_missing_row(self, get):
        get.return_value = fake_response(status=406, body={"code": "PGRST116", "message": "no rows"})

        with pytest.raises(SupabaseError) as exc:
            SupabaseClient("https://db.test", "anon").select_one("notifications")
        assert exc.value.code == "PGRST116"
        assert exc.value.status_code == 406

    @patch("ecom_studio.clients.supabase.requests.head")
    def test_count_reads_content_range(self, head):
        head.return_value = fake_response(headers={"Content-Range": "0-9/42"})

        assert SupabaseClient("https://db.test", "anon").count("user_files", {"folder": "uploads"}) == 42
        assert head.call_args.kwargs["headers"]["Prefer"] == "count=exact"

    @patch("ecom_studio.clients.supabase.requests.get")
    def test_get_user_rejected(self, get):
        get.return_value = fake_response(status=401, body={"message": "bad jwt"})

        with pytest.raises(AuthenticationError):
            SupabaseClient("https://db.test", "anon").get_user("expired")

    @patch("ecom_studio.clients.supabase.requests.post")
    def test_sign_in_wrong_password(self, post):
        post.return_value = fake_response(status=400, body={"error": "invalid_grant"})

        with pytest.raises(AuthenticationError, match="Invalid login credentials"):
            SupabaseClient("https://db.test", "anon").sign_in_with_password("ada@test", "nope")
        assert post.call_args.kwargs["params"] == {"grant_type": "password"}

    @patch("ecom_studio.clients.supabase.requests.put")
    def test_update_user_uses_session_token(self, put):
        put.return_value = fake_response(body={"id": "user-1"})

        SupabaseClient("https://db.test", "anon").update_user({"password": "new-secret"}, access_token="sess")

        args, kwargs = put.call_args
        assert args[0] == "https://db.test/auth/v1/user"
        assert kwargs["headers"]["Authorization"] == "Bearer sess"
        assert kwargs["json"] == {"password": "new-secret"}


@patch("ecom_studio.clients.studio.requests.post")
def test_create_user_folders(post):
    post.return_value = fake_response(body={"success": True, "folders": ["user-u1/uploads"]})

    assert StudioClient("https://app.test", "tok").create_user_folders("u1") == ["user-u1/uploads"]
    assert post.call_args.kwargs["json"] == {"userId": "u1"}
