from src.config import app_config
from src.db.seed import profile_fields


def test_profile_fields_normalizes_entry():
    fields = profile_fields({
        "ticker": "SAP.DE",
        "currency": "eur",
        "asset_class": "equity",
        "sectors": [{"name": "Technology", "weight": 1}],
        "countries": [{"code": "de", "weight": 1}],
    })
    assert fields["currency"] == "EUR"
    assert fields["asset_class"] == "EQUITY"
    assert fields["sectors"] == [{"name": "Technology", "weight": 1.0}]
    assert fields["countries"] == [{"code": "DE", "weight": 1.0}]


def test_profile_fields_defaults_for_sparse_entry():
    fields = profile_fields({"ticker": "XYZ", "asset_class": "warrant"})
    assert fields["asset_class"] == "UNKNOWN"
    assert fields["currency"] == "USD"
    assert fields["sectors"] is None
    assert fields["countries"] is None


def test_configured_assets_are_seedable():
    for asset_cfg in app_config["assets"]:
        fields = profile_fields(asset_cfg)
        assert fields["asset_class"] != "UNKNOWN", asset_cfg["ticker"]
