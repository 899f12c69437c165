import pytest

from ecom_studio.errors import ValidationError
from ecom_studio.models import PriceSettings, Transaction
from ecom_studio.services import CreditService

from conftest import ts


@pytest.mark.parametrize(
    "base, discount, expected",
    [
        (100, 0, 100),
        (100, 10, 90),
        (100, 12.5, 88),   # 87.5 rounds up
        (5, 50, 3),        # 2.5 rounds up
        (99, 10, 89),      # 89.1
    ],
)
def test_effective_price_rounds_half_up(base, discount, expected):
    assert PriceSettings(credit_per_image=base, discount_rate=discount).effective_price_per_image == expected


def test_pricing_from_admin_settings(db):
    db.seed(
        "admin_settings",
        {"setting_key": "credit_per_image", "setting_value": "120"},
        {"setting_key": "discount_rate", "setting_value": "25"},
        {"setting_key": "unrelated", "setting_value": "x"},
    )
    credits = CreditService(db, "user-1")

    pricing = credits.load_pricing()

    assert pricing.credit_per_image == 120
    assert credits.effective_price_per_image == 90


def test_pricing_falls_back_to_defaults(db):
    db.fail_on("select", "admin_settings")
    credits = CreditService(db, "user-1")

    assert credits.load_pricing() == PriceSettings()
    assert credits.effective_price_per_image == 100


def test_check_credits_boundary(db):
    credits = CreditService(db, "user-1")
    credits.load_credits()

    assert credits.check_credits(10)
    assert not credits.check_credits(11)
    assert credits.shortfall(11) == 100


def test_deduct_writes_balance_and_transaction(db):
    credits = CreditService(db, "user-1")
    credits.load_credits()

    assert credits.deduct_credits(3) is True

    assert credits.balance == 700
    assert db.rows("profiles")[0]["credits"] == 700
    [tx] = db.rows("transactions")
    assert tx["amount"] == -300
    assert tx["images_count"] == 3
    assert tx["transaction_type"] == "video_generation"


def test_deduct_insufficient_writes_nothing(db):
    db.rows("profiles")[0]["credits"] = 250
    credits = CreditService(db, "user-1")
    credits.load_credits()

    assert credits.deduct_credits(3) is False
    assert db.rows("profiles")[0]["credits"] == 250
    assert ("update", "profiles") not in db.calls
    assert "You need 300 credits" in credits.insufficient_message(3)
    assert "50 credits short" in credits.insufficient_message(3)


def test_transaction_failure_keeps_deduction(db):
    db.fail_on("insert", "transactions")
    credits = CreditService(db, "user-1")
    credits.load_credits()

    assert credits.deduct_credits(2) is True
    assert db.rows("profiles")[0]["credits"] == 800
    assert db.rows("transactions") == []


def test_add_credits_for_other_user(db):
    db.seed("profiles", {"id": "user-2", "credits": 50})
    credits = CreditService(db, "user-1")

    assert credits.add_credits(500, user_id="user-2") == 550

    [tx] = db.rows("transactions")
    assert tx["user_id"] == "user-2"
    assert tx["transaction_type"] == "manual_credit_addition"
    with pytest.raises(ValidationError):
        credits.add_credits(0)


def test_list_transactions_newest_first(db):
    db.seed(
        "transactions",
        {"user_id": "user-1", "amount": -100, "transaction_type": "video_generation", "created_at": ts(1)},
        {"user_id": "user-1", "amount": 500, "transaction_type": "credit_purchase", "created_at": ts(5)},
        {"user_id": "user-2", "amount": -100, "transaction_type": "video_generation", "created_at": ts(3)},
    )
    credits = CreditService(db, "user-1")

    transactions = credits.list_transactions()

    assert [t.amount for t in transactions] == [500, -100]


def test_transactions_csv():
    csv_text = CreditService.transactions_csv([
        Transaction("user-1", 500, "manual_credit_addition", "Manual Credit Addition", created_at="2025-03-01T09:05:00+00:00"),
        Transaction("user-1", -200, "video_generation", "", images_count=2, created_at="2025-03-02T18:30:15+00:00"),
    ])

    lines = csv_text.splitlines()
    assert lines[0] == "Description,Date,Time,Amount"
    assert lines[1] == '"Manual Credit Addition","01/03/2025","09:05:00","+500 Credits"'
    assert lines[2] == '"Video Generation (2 Images)","02/03/2025","18:30:15","-200 Credits"'


def test_transactions_csv_empty():
    with pytest.raises(ValidationError, match="No transactions"):
        CreditService.transactions_csv([])


def test_top_up_applies_bonus_rate(db):
    credits = CreditService(db, "user-1")
    credits.pricing = PriceSettings(credit_topup_bonus_rate=12.5)

    assert credits.top_up(500) == 1563  # 500 + 62.5 rounded up
    assert credits.balance == 1563

    purchase, bonus = db.rows("transactions")
    assert (purchase["transaction_type"], purchase["amount"]) == ("credit_purchase", 500)
    assert (bonus["transaction_type"], bonus["amount"]) == ("credit_topup_bonus", 63)


def test_top_up_without_bonus(db):
    credits = CreditService(db, "user-1")

    assert credits.top_up(200) == 1200
    assert [t["transaction_type"] for t in db.rows("transactions")] == ["credit_purchase"]
    with pytest.raises(ValidationError):
        credits.top_up(-5)


def test_signup_bonus_granted_once(db):
    credits = CreditService(db, "user-1")
    credits.pricing = PriceSettings(signup_credit=250)

    assert credits.grant_signup_bonus() == 1250
    assert credits.grant_signup_bonus() == 1250
    [tx] = db.rows("transactions")
    assert tx["transaction_type"] == "signup_bonus"


@pytest.mark.parametrize(
    "transaction, expected",
    [
        (Transaction("u", -300, "video_generation", images_count=3), "Video Generation (3 Images)"),
        (Transaction("u", -100, "video_generation"), "Video Generation"),
        (Transaction("u", 50, "credit_topup_bonus"), "Credit Top-up Bonus"),
        (Transaction("u", 100, "signup_bonus"), "Sign up Bonus"),
        (Transaction("u", -20, "image_generation"), "Image Generation"),
        (Transaction("u", 10, "refund", "Goodwill"), "Goodwill"),
        (Transaction("u", 10, ""), "Unknown"),
    ],
)
def test_transaction_labels(transaction, expected):
    assert transaction.label == expected
