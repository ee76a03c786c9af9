import pytest
from ratework.core.exceptions import (
    RateWorkError,
    ConfigError,
    LoggerError,
    ValidationError,
    ProcessingError,
    OperationCancelledError
)
from ratework.reviews.ledger import SelfVoteError, VoteError
from ratework.reviews.moderation import ReviewValidationError

def test_base_exception():
    """Test RateWorkError base exception"""
    with pytest.raises(RateWorkError) as exc_info:
        raise RateWorkError("Base error message")
    assert str(exc_info.value) == "Base error message"
    assert exc_info.value.details == {}

def test_validation_error():
    """Test ValidationError"""
    with pytest.raises(ValidationError) as exc_info:
        raise ValidationError("Invalid input data")
    assert str(exc_info.value) == "Invalid input data"
    assert isinstance(exc_info.value, RateWorkError)

def test_operation_cancelled_error():
    """Test OperationCancelledError"""
    with pytest.raises(OperationCancelledError) as exc_info:
        raise OperationCancelledError("Operation cancelled: deadline exceeded")
    assert "deadline" in str(exc_info.value)

def test_error_with_details():
    """Test exception with additional details"""
    details = {"company_id": "acme", "review_id": "r1"}
    with pytest.raises(ProcessingError) as exc_info:
        raise ProcessingError("Rating recomputation failed", details=details)
    assert exc_info.value.details == details
    assert exc_info.value.message == "Rating recomputation failed"

def test_error_inheritance():
    """Test proper exception inheritance"""
    exceptions = [
        ConfigError, LoggerError, ValidationError, ProcessingError,
        OperationCancelledError
    ]

    for exception_class in exceptions:
        exc = exception_class("Test")
        assert isinstance(exc, RateWorkError)
        assert isinstance(exc, Exception)

def test_domain_errors_are_validation_errors():
    """Test that review and vote errors are caught as ValidationError"""
    assert issubclass(SelfVoteError, VoteError)
    assert issubclass(VoteError, ValidationError)
    assert issubclass(ReviewValidationError, ValidationError)
