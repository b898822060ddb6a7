import pytest

from app.client import ApiError, PrintStudioClient, SessionExpired
from app.services.auth import AuthService
from app.services.coupon import CouponService


def _token(user_id):
    return AuthService().create_access_token(data={"sub": user_id})


def test_token_is_fetched_for_every_request(client):
    calls = []

    def provider():
        calls.append(1)
        return _token("app-user")

    api = PrintStudioClient("http://testserver", provider, http=client)
    assert api.get_customer()["credits"] == 5
    assert api.purchase_credits("5")["credits"] == 10
    assert len(calls) == 2


def test_reauthenticates_once_on_401(client):
    state = {"token": "expired-token", "refreshes": 0}

    def refresh():
        state["refreshes"] += 1
        state["token"] = _token("app-user")

    api = PrintStudioClient("http://testserver", lambda: state["token"], http=client, on_unauthorized=refresh)
    assert api.get_customer()["user_id"] == "app-user"
    assert state["refreshes"] == 1


def test_session_expired_when_reauth_does_not_help(client):
    refreshes = []
    api = PrintStudioClient("http://testserver", lambda: "still-bad", http=client,
                            on_unauthorized=lambda: refreshes.append(1))
    with pytest.raises(SessionExpired):
        api.get_customer()
    assert len(refreshes) == 1


def test_missing_token_is_unauthorized(client):
    api = PrintStudioClient("http://testserver", lambda: None, http=client)
    with pytest.raises(SessionExpired) as exc_info:
        api.list_orders()
    assert exc_info.value.status_code == 401


def test_server_errors_carry_the_message(client, session):
    CouponService(session).create(None, "ONEOFF", 3)
    api = PrintStudioClient("http://testserver", lambda: _token("app-user"), http=client)

    assert api.redeem_coupon("ONEOFF") == {"success": True, "creditsAdded": 3, "newBalance": 8}
    with pytest.raises(ApiError) as exc_info:
        api.redeem_coupon("ONEOFF")
    assert exc_info.value.status_code == 400
    assert exc_info.value.message == "You have already used this coupon"


def test_design_and_order_round_trip(client, product_type_id):
    api = PrintStudioClient("http://testserver", lambda: _token("app-user"), http=client)

    result = api.generate_design("a paper crane", "12x16", product_type_id, frame_color="white")
    design = result["design"]
    assert result["creditsRemaining"] == 4
    assert api.list_designs(limit=5)["total"] == 1

    order = api.place_order(design["id"])
    assert order["frame_color"] == "white"
    assert [o["id"] for o in api.list_orders()] == [order["id"]]

    with pytest.raises(ApiError) as exc_info:
        api.delete_design(design["id"])
    assert exc_info.value.status_code == 409
