from datetime import datetime, timedelta, timezone

import pytest

from storefront.client.api import CheckoutError, StorefrontAPIError
from storefront.client.cart import Cart, CartLine
from storefront.client.session import CustomerDetails, ShopperSession
from storefront.config import Config
from storefront.observability import get_counter_value
from storefront.promotions.challenge import ChallengeStatus, ChallengeType
from storefront.promotions.discounts import PricingTier
from storefront.promotions.flash_offer import FlashOfferSnapshot


class _QuietConfig(Config):
    # Keep background sampling out of the way; tests drive the clock by hand
    CHALLENGE_TICK_SECONDS = 3600.0
    FLASH_OFFER_POLL_SECONDS = 3600.0
    TIME_CHALLENGE_POLL_SECONDS = 3600.0
    BANNER_TICK_SECONDS = 3600.0


class _StubClient:
    def __init__(self):
        self.flash_offer = None
        self.flash_offer_down = False
        self.time_challenge = {"isActive": True, "durationSeconds": 30, "discountPercent": 30}
        self.checkout_discount = 0
        self.promotional_settings = None
        self.submitted = []
        self.claims = 0
        self.claim_succeeds = True
        self.fail_submit = False
        self.on_submit = None

    def fetch_flash_offer(self):
        if self.flash_offer_down:
            raise StorefrontAPIError("Request to /api/flash-offer failed: offline")
        return self.flash_offer

    def get_time_challenge(self):
        return self.time_challenge

    def get_checkout_discount(self):
        return self.checkout_discount

    def get_promotional_settings(self):
        return self.promotional_settings

    def submit_order(self, payload):
        if self.on_submit:
            self.on_submit()
        if self.fail_submit:
            raise CheckoutError("Could not reach the store")
        self.submitted.append(payload)
        number = "TRY-1700000000000" if payload["isTryNowChallenge"] else "48213"
        return {"orderNumber": number, "total": payload["total"]}

    def claim_flash_offer(self):
        self.claims += 1
        return self.claim_succeeds, None


CUSTOMER = CustomerDetails(customer_name="Asha", address="Hostel Block A", mobile="9876543210", instagram="asha")


def _line(product_id=1, price="₹150"):
    return CartLine(product_id=product_id, title=f"Box {product_id}", price=price)


def _flash_snapshot(clock, claimed=0, seconds_left=30):
    start = datetime.fromtimestamp(clock.now, tz=timezone.utc)
    return FlashOfferSnapshot(
        is_active=True,
        max_claims=5,
        claimed_count=claimed,
        duration_seconds=30,
        started_at=start,
        ends_at=start + timedelta(seconds=seconds_left),
    )


@pytest.fixture
def stub_client():
    return _StubClient()


@pytest.fixture
def shopper(stub_client, fake_clock):
    session = ShopperSession(stub_client, cart=Cart(), clock=fake_clock, config=_QuietConfig)
    yield session
    session.stop_polling()


def test_flash_offer_activation_clears_cart_once(shopper, stub_client, fake_clock):
    shopper.cart.add(_line())
    stub_client.flash_offer = _flash_snapshot(fake_clock)

    shopper.refresh_flash_offer()
    assert shopper.cart.is_empty

    shopper.cart.add(_line())
    stub_client.flash_offer = _flash_snapshot(fake_clock, claimed=1)
    shopper.refresh_flash_offer()
    assert shopper.cart.count == 1


def test_unreachable_promotions_are_treated_as_inactive(shopper, stub_client):
    stub_client.time_challenge = None
    shopper.refresh_all()
    assert shopper.start_time_challenge() is False
    shopper.cart.add(_line(price="₹500"))
    assert shopper.quote().tier is PricingTier.FULL_PRICE


def test_time_challenge_needs_store_switch(shopper, stub_client):
    stub_client.time_challenge = {"isActive": False, "durationSeconds": 30, "discountPercent": 30}
    shopper.refresh_time_challenge()
    assert shopper.start_time_challenge() is False
    assert shopper.time_challenge.status is ChallengeStatus.IDLE


def test_time_challenge_start_clears_cart_but_retry_does_not(shopper, fake_clock):
    shopper.cart.add(_line())
    assert shopper.start_time_challenge() is True
    assert shopper.cart.is_empty
    assert shopper.start_time_challenge() is False

    shopper.cart.add(_line())
    fake_clock.advance(31)
    shopper.time_challenge.sample()
    assert shopper.time_challenge.status is ChallengeStatus.TIMED_OUT

    assert shopper.start_time_challenge() is True
    assert shopper.cart.count == 1


def test_try_now_start_clears_cart(shopper):
    shopper.cart.add(_line())
    run = shopper.start_try_now_challenge(ChallengeType.FLASH, duration_seconds=20)
    assert shopper.cart.is_empty
    assert run.status is ChallengeStatus.RUNNING


def test_quote_combines_live_sources(shopper, stub_client):
    stub_client.checkout_discount = 10
    shopper.refresh_all()
    shopper.start_time_challenge()
    shopper.cart.add(_line(price="₹500"))

    quote = shopper.quote()
    assert quote.tier is PricingTier.CHALLENGE
    assert quote.total == 500 + 39 - 150 - 50


def test_flash_checkout_claims_slot_and_clears_cart(shopper, stub_client, fake_clock):
    stub_client.flash_offer = _flash_snapshot(fake_clock)
    shopper.refresh_flash_offer()
    shopper.cart.add(_line(price="₹150"))

    result = shopper.checkout(CUSTOMER)

    payload = stub_client.submitted[0]
    assert payload["total"] == "₹39"
    assert payload["isFlashOffer"] is True
    assert payload["flashOfferDiscount"] == 150
    assert payload["isTryNowChallenge"] is False
    assert stub_client.claims == 1
    assert result.order_number == "48213"
    assert not result.flash_claim_lost
    assert shopper.cart.is_empty


def test_lost_flash_claim_keeps_order(shopper, stub_client, fake_clock):
    stub_client.flash_offer = _flash_snapshot(fake_clock)
    stub_client.claim_succeeds = False
    shopper.refresh_flash_offer()
    shopper.cart.add(_line())

    result = shopper.checkout(CUSTOMER)

    assert result.flash_claim_lost
    assert result.total == "₹39"
    assert get_counter_value("flash_offer_claims_lost_total") == 1


def test_failed_submission_leaves_state_untouched(shopper, stub_client):
    shopper.refresh_all()
    shopper.start_time_challenge()
    shopper.cart.add(_line())
    stub_client.fail_submit = True

    with pytest.raises(CheckoutError) as excinfo:
        shopper.checkout(CUSTOMER)

    assert excinfo.value.retryable
    assert shopper.cart.count == 1
    assert shopper.time_challenge.status is ChallengeStatus.RUNNING
    assert stub_client.claims == 0


def test_discount_locked_at_submission(shopper, stub_client, fake_clock):
    shopper.refresh_all()
    shopper.start_time_challenge()
    shopper.cart.add(_line(price="₹500"))
    fake_clock.advance(25)

    def _slow_network():
        fake_clock.advance(10)
        shopper.time_challenge.sample()

    stub_client.on_submit = _slow_network
    result = shopper.checkout(CUSTOMER)

    assert stub_client.submitted[0]["total"] == "₹389"
    assert shopper.time_challenge.status is ChallengeStatus.TIMED_OUT
    assert result.completed_challenges == ()
    assert shopper.cart.is_empty


def test_successful_checkout_completes_running_challenge(shopper):
    shopper.refresh_all()
    shopper.start_time_challenge()
    shopper.cart.add(_line())

    result = shopper.checkout(CUSTOMER)

    assert result.completed_challenges == ("time",)
    assert shopper.time_challenge.status is ChallengeStatus.COMPLETED


def test_try_now_checkout_is_flagged(shopper, stub_client):
    shopper.start_try_now_challenge(ChallengeType.TIMER, duration_seconds=20, discount_percent=20)
    shopper.cart.add(_line(price="₹500"))

    result = shopper.checkout(CUSTOMER)

    assert stub_client.submitted[0]["isTryNowChallenge"] is True
    assert stub_client.submitted[0]["total"] == "₹439"
    assert result.is_try_now
    assert shopper.try_now.status is ChallengeStatus.COMPLETED


def test_empty_cart_cannot_check_out(shopper):
    with pytest.raises(CheckoutError) as excinfo:
        shopper.checkout(CUSTOMER)
    assert not excinfo.value.retryable


def test_polling_timers_are_cancelled(shopper):
    shopper.start_polling()
    timers = list(shopper._timers)
    assert timers and all(timer.is_running for timer in timers)

    shopper.stop_polling()
    assert shopper._timers == []
    assert not any(timer.is_running for timer in timers)


def test_banner_countdown_follows_settings(shopper, stub_client, fake_clock):
    end = datetime.fromtimestamp(fake_clock.now + 90, tz=timezone.utc)
    stub_client.promotional_settings = {"bannerText": "Deal", "timerEndTime": end.isoformat()}
    shopper.refresh_promotional_settings()
    assert shopper.banner_time_remaining() == 90
    fake_clock.advance(30)
    assert shopper.banner_time_remaining() == 60


def test_failed_flash_poll_does_not_clear_cart_again(shopper, stub_client, fake_clock):
    shopper.cart.add(_line())
    stub_client.flash_offer = _flash_snapshot(fake_clock)
    shopper.refresh_flash_offer()
    assert shopper.cart.is_empty

    shopper.cart.add(_line(price="₹250"))
    stub_client.flash_offer_down = True
    assert shopper.refresh_flash_offer() is None
    assert shopper.quote().tier is PricingTier.FULL_PRICE
    assert shopper.cart.count == 1

    stub_client.flash_offer_down = False
    shopper.refresh_flash_offer()
    assert shopper.cart.count == 1
    assert shopper.quote().tier is PricingTier.FLASH_OFFER


def test_offer_that_comes_back_after_ending_clears_cart(shopper, stub_client, fake_clock):
    stub_client.flash_offer = _flash_snapshot(fake_clock)
    shopper.refresh_flash_offer()
    stub_client.flash_offer = None
    shopper.refresh_flash_offer()

    shopper.cart.add(_line())
    stub_client.flash_offer = _flash_snapshot(fake_clock)
    shopper.refresh_flash_offer()
    assert shopper.cart.is_empty


def test_try_now_order_does_not_take_flash_slot(shopper, stub_client, fake_clock):
    stub_client.flash_offer = _flash_snapshot(fake_clock)
    shopper.refresh_flash_offer()
    shopper.start_try_now_challenge(ChallengeType.TIMER, duration_seconds=20, discount_percent=20)
    shopper.cart.add(_line(price="₹500"))

    result = shopper.checkout(CUSTOMER)

    payload = stub_client.submitted[0]
    assert payload["isFlashOffer"] is True
    assert payload["isTryNowChallenge"] is True
    assert payload["total"] == "₹339"
    assert result.is_try_now
    assert stub_client.claims == 0
    assert not result.flash_claim_lost


@pytest.mark.parametrize("promotion, total", [(None, "₹289"), ("flash", "₹89"), ("time", "₹214")])
def test_250_basket_quotes(shopper, stub_client, fake_clock, promotion, total):
    if promotion == "flash":
        stub_client.flash_offer = _flash_snapshot(fake_clock)
    shopper.refresh_all()
    if promotion == "time":
        shopper.start_time_challenge()
    shopper.cart.add(_line(price="₹250"))

    assert shopper.quote().total_display == total


def test_banner_ticks_while_polling(shopper, stub_client, fake_clock):
    end = datetime.fromtimestamp(fake_clock.now + 45, tz=timezone.utc)
    stub_client.promotional_settings = {"bannerText": "Deal", "timerEndTime": end.isoformat()}
    ticks = []
    shopper.banner_listeners.append(ticks.append)

    shopper.start_polling()
    assert ticks == [45]
    assert shopper.banner_clock.last_value == 45

    shopper.stop_polling()
    assert shopper.banner_clock._timer is None
