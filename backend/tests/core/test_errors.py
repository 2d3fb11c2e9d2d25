"""Error Hierarchy — tests for codes, statuses and the REST envelope."""

from vetcepi.core.errors import (
    ConfigurationError, DatabaseError, DecryptionFailure, DuplicateBarcodeError,
    EncryptionFailure, ErrorCategory, ErrorContext, InputValidationError,
    MultipleMatchError, VetcepiError,
)


def test_all_errors_share_the_base():
    for err in (
        EncryptionFailure(), DecryptionFailure(),
        InputValidationError("Medicine name is required", "name"),
        DuplicateBarcodeError("123", "abc"),
        MultipleMatchError("medicines", "barcode", "123", 2),
        DatabaseError("boom", "query"),
        ConfigurationError("missing", "ENCRYPTION_KEY"),
    ):
        assert isinstance(err, VetcepiError)
        assert err.code
        assert err.to_response()["error"]["code"] == err.code


def test_cipher_errors_are_cryptography_category():
    assert EncryptionFailure().category is ErrorCategory.CRYPTOGRAPHY
    assert DecryptionFailure("wrong key").reason == "wrong key"


def test_duplicate_barcode_response_carries_existing_record():
    body = DuplicateBarcodeError("5012345678900", "med-1").to_response()
    assert body["error"]["code"] == "DUPLICATE_BARCODE"
    assert body["error"]["context"]["barcode"] == "5012345678900"
    assert body["error"]["context"]["record_id"] == "med-1"


def test_multiple_match_is_critical_integrity_error():
    err = MultipleMatchError("medicines", "barcode", "000", 3)
    assert err.category is ErrorCategory.DATA_INTEGRITY
    assert not err.recoverable
    assert err.context.barcode == "000"


def test_validation_error_is_recoverable():
    err = InputValidationError("Barcode is required", "barcode")
    assert err.recoverable
    assert err.http_status == 400
    assert err.field == "barcode"


def test_user_message_overrides_message_in_response():
    ctx = ErrorContext(user_message="Please try again")
    body = DatabaseError("socket closed", "query", ctx).to_response()
    assert body["error"]["message"] == "Please try again"
