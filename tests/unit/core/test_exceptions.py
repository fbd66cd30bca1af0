"""
Unit tests for chat_bridge/core/exceptions.py - exception hierarchy.
"""

import pytest

from chat_bridge.core.exceptions import (
    AdmissionRejectedError,
    BridgeError,
    ErrorCode,
    InvalidArgumentError,
    ProtocolError,
    TransportError,
)


class TestBridgeError:
    def test_has_message_and_default_code(self):
        error = BridgeError("boom")

        assert str(error) == "boom"
        assert error.message == "boom"
        assert error.error_code == ErrorCode.BRIDGE_ERROR

    def test_extra_attributes(self):
        error = BridgeError("boom", session="abc")
        assert error.session == "abc"

    @pytest.mark.parametrize(
        "error_class",
        [AdmissionRejectedError, TransportError, ProtocolError, InvalidArgumentError],
    )
    def test_subclasses_inherit_from_base(self, error_class):
        assert issubclass(error_class, BridgeError)


class TestAdmissionRejectedError:
    def test_carries_limit(self):
        error = AdmissionRejectedError("full", limit=10)

        assert error.limit == 10
        assert error.error_code == ErrorCode.ADMISSION_REJECTED


class TestTransportError:
    def test_status_code_optional(self):
        assert TransportError("down").status_code is None

    def test_status_code(self):
        error = TransportError("bad gateway", status_code=502)

        assert error.status_code == 502
        assert error.error_code == ErrorCode.TRANSPORT_ERROR


class TestProtocolError:
    def test_not_backend_origin_by_default(self):
        assert ProtocolError("bad json").backend_origin is False

    def test_backend_origin(self):
        error = ProtocolError("Session expired", backend_origin=True)

        assert error.backend_origin is True
        assert error.error_code == ErrorCode.PROTOCOL_ERROR


class TestInvalidArgumentError:
    def test_is_value_error(self):
        with pytest.raises(ValueError):
            raise InvalidArgumentError("empty name", argument="params")

    def test_argument(self):
        error = InvalidArgumentError("empty name", argument="params")

        assert error.argument == "params"
        assert error.error_code == ErrorCode.INVALID_ARGUMENT
