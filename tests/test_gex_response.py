"""Unit tests for the public response shape."""
import json
from datetime import timedelta

import pytest

from deribit_gex.gex.gex_calculator import GEXCalculator
from deribit_gex.gex.gex_response import build_gex_response
from tests.conftest import NOW, QUARTER_EXPIRY, make_instrument, make_quote, make_snapshot


@pytest.fixture
def response(mixed_chain_snapshot):
    result = GEXCalculator().calculate(mixed_chain_snapshot, current_time=NOW)
    return build_gex_response(result)


@pytest.mark.unit
class TestBuildGexResponse:

    def test_top_level_keys(self, response):
        assert response["indexPrice"] == 50000.0
        assert response["currency"] == "BTC"
        assert set(response) >= {
            "indexPrice", "gammaByExpiration", "gexFlipLevel", "maxGexStrike", "maxGexValue",
            "processedCount", "skippedCount", "skippedByReason",
        }
        assert response["processedCount"] == 6
        assert response["skippedCount"] == 0

    def test_expiration_keys_are_sorted_iso_dates(self, response):
        keys = list(response["gammaByExpiration"])
        assert keys == sorted(keys)
        assert keys[0] == QUARTER_EXPIRY.date().isoformat()
        assert keys[1] == (QUARTER_EXPIRY + timedelta(days=30)).date().isoformat()

    def test_bucket_totals(self, response):
        for bucket in response["gammaByExpiration"].values():
            assert bucket["total_gamma"] == bucket["call_gamma"] + bucket["put_gamma"]
            assert bucket["total_gamma_usd"] == bucket["call_gamma_usd"] + bucket["put_gamma_usd"]

    def test_instrument_fields(self, response):
        first = next(iter(response["gammaByExpiration"].values()))
        instrument = first["instruments"][0]

        assert set(instrument) == {
            "instrument_name", "strike", "option_type", "gamma", "open_interest",
            "gamma_exposure", "gamma_exposure_usd", "mark_iv", "mark_price",
        }
        assert instrument["instrument_name"] == "BTC-Q-45000-P"
        assert instrument["option_type"] == "put"
        assert instrument["mark_iv"] == 0.7

    def test_gamma_rounded_for_display_only(self):
        snapshot = make_snapshot([make_instrument("A", 50000.0)], [make_quote("A")])
        result = GEXCalculator().calculate(snapshot, current_time=NOW)
        record = result.records[0]

        shown = build_gex_response(result)["gammaByExpiration"][result.expirations[0].date_key]["instruments"][0]

        assert shown["gamma"] == round(record.gamma, 8)
        assert shown["gamma_exposure"] == record.gamma_exposure
        assert record.gamma != shown["gamma"]

    def test_no_flip_is_null(self):
        snapshot = make_snapshot([make_instrument("A", 50000.0)], [make_quote("A")])
        response = build_gex_response(GEXCalculator().calculate(snapshot, current_time=NOW))

        assert response["gexFlipLevel"] is None
        assert response["maxGexStrike"] == 50000.0
        assert response["maxGexValue"] > 0

    def test_json_serializable(self, response):
        assert json.loads(json.dumps(response))["indexPrice"] == 50000.0
