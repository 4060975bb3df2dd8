"""Tests for error classes and pre-defined error instances."""

from __future__ import annotations

import pytest

from solana_tax.errors import definitions as defs
from solana_tax.errors.chain_errors import PriceFeedError, RPCError
from solana_tax.errors.tax_errors import TaxError


class TestTaxError:
    def test_default_attributes(self) -> None:
        err = TaxError("something broke")
        assert str(err) == "something broke"
        assert err.message == "something broke"
        assert err.status_code == 500
        assert err.code == "tax-error"

    def test_custom_attributes(self) -> None:
        err = TaxError("bad request", status_code=400, code="bad-req")
        assert err.status_code == 400
        assert err.code == "bad-req"


class TestChainErrors:
    def test_rpc_error_defaults(self) -> None:
        err = RPCError("node down")
        assert isinstance(err, TaxError)
        assert err.status_code == 502
        assert err.code == "rpc-error"

    def test_rpc_error_custom_status(self) -> None:
        assert RPCError("slow down", status_code=429).status_code == 429

    def test_price_feed_error(self) -> None:
        err = PriceFeedError("feed down")
        assert isinstance(err, TaxError)
        assert err.code == "price-feed-error"


class TestDefinitions:
    @pytest.mark.parametrize(
        "err",
        [
            defs.ErrMissingWalletAddress,
            defs.ErrInvalidWalletAddress,
            defs.ErrMissingDateRange,
            defs.ErrInvalidDateRange,
            defs.ErrDateRangeTooLarge,
            defs.ErrUnsupportedExportType,
        ],
    )
    def test_validation_errors_are_400(self, err: TaxError) -> None:
        assert err.status_code == 400

    def test_state_machine_errors_are_distinct(self) -> None:
        assert defs.ErrPaymentNotFound.status_code == 404
        assert defs.ErrPaymentRequired.status_code == 402
        assert defs.ErrPaymentNotFound.code != defs.ErrPaymentRequired.code

    def test_codes_unique(self) -> None:
        errors = [v for v in vars(defs).values() if isinstance(v, TaxError)]
        codes = [e.code for e in errors]
        assert len(codes) == len(set(codes))

    def test_raisable(self) -> None:
        with pytest.raises(TaxError, match="payment request not found"):
            raise defs.ErrPaymentNotFound
