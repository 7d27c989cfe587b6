"""Tests for the error hierarchy."""

from webhook_dispatcher.core.errors import (
    BaseError,
    DeliveryError,
    ErrorCategory,
    ErrorSeverity,
    ExhaustedRetriesError,
    NotFoundError,
    PermanentDeliveryError,
    TransientDeliveryError,
    ValidationError,
)


def test_validation_error():
    error = ValidationError("bad url", details={"field": "url"})

    assert isinstance(error, BaseError)
    assert error.category is ErrorCategory.VALIDATION_ERROR
    assert error.severity is ErrorSeverity.LOW
    assert error.details == {"field": "url"}
    assert str(error) == "bad url"
    assert error.timestamp


def test_not_found_error_carries_id():
    error = NotFoundError("abc")

    assert error.subscription_id == "abc"
    assert error.category is ErrorCategory.NOT_FOUND_ERROR
    assert "abc" in error.message


def test_delivery_error_family():
    transient = TransientDeliveryError("rate limited", status_code=429, retry_after=3.0)
    permanent = PermanentDeliveryError("gone", status_code=410)
    exhausted = ExhaustedRetriesError(5, transient)

    for error in (transient, permanent, exhausted):
        assert isinstance(error, DeliveryError)
        assert error.category is ErrorCategory.DELIVERY_ERROR

    assert transient.retry_after == 3.0
    assert permanent.status_code == 410
    assert exhausted.attempts == 5
    assert exhausted.last_error is transient
    assert exhausted.status_code == 429
    assert "5 attempts" in exhausted.message
