"""Tests for ticker list storage."""

import json
from unittest import mock

import pytest
import requests

from trendwatch.sma.config import Settings
from trendwatch.sma.errors import ConfigurationMissingError, InvalidTickerListError, TickerSourceError
from trendwatch.sma.tickers import (
    EdgeConfigTickerSource,
    FallbackTickerSource,
    FileTickerSource,
    TickerList,
    build_ticker_source,
    validate_tickers,
)

CONNECTION = "https://edge-config.vercel.com/ecfg_abc123?token=read-token"


def _response(status=200, body=None):
    resp = mock.Mock()
    resp.status_code = status
    resp.ok = status < 400
    resp.json.return_value = body
    if status >= 400 and status != 404:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} error", response=resp)
    return resp


@pytest.fixture
def tickers_file(tmp_path):
    path = tmp_path / "tickers.json"
    path.write_text(json.dumps({"tickers": ["SPY", "QQQ"]}))
    return path


class TestValidateTickers:
    def test_normalises(self):
        assert validate_tickers([" aapl", "Msft "]) == ["AAPL", "MSFT"]

    def test_not_a_list(self):
        with pytest.raises(InvalidTickerListError, match="Tickers must be an array"):
            validate_tickers("AAPL")

    @pytest.mark.parametrize("bad", [["AAPL", ""], ["AAPL", "  "], ["AAPL", 5], [None]])
    def test_bad_entries(self, bad):
        with pytest.raises(InvalidTickerListError, match="All tickers must be non-empty strings"):
            validate_tickers(bad)

    def test_empty_list_is_allowed(self):
        assert validate_tickers([]) == []


class TestFileTickerSource:
    def test_fetch(self, tickers_file):
        result = FileTickerSource(tickers_file).fetch()
        assert result == TickerList(tickers=["SPY", "QQQ"], source="file")
        assert result.to_dict() == {"tickers": ["SPY", "QQQ"], "source": "file"}

    def test_bare_list(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text('["AAPL"]')
        assert FileTickerSource(path).fetch().tickers == ["AAPL"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(TickerSourceError):
            FileTickerSource(tmp_path / "nope.json").fetch()

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(TickerSourceError):
            FileTickerSource(path).fetch()

    def test_update_round_trips(self, tickers_file):
        source = FileTickerSource(tickers_file)
        assert source.update(["nvda", "amd"]).tickers == ["NVDA", "AMD"]
        assert source.fetch().tickers == ["NVDA", "AMD"]
        assert list(tickers_file.parent.glob(".tickers-*")) == []

    def test_update_validates_first(self, tickers_file):
        with pytest.raises(InvalidTickerListError):
            FileTickerSource(tickers_file).update(["OK", ""])
        assert json.loads(tickers_file.read_text())["tickers"] == ["SPY", "QQQ"]


class TestEdgeConfigTickerSource:
    def test_fetch(self):
        session = mock.MagicMock()
        session.get.return_value = _response(body=["AAPL", "MSFT"])
        result = EdgeConfigTickerSource(CONNECTION, session=session).fetch()

        assert result.tickers == ["AAPL", "MSFT"]
        assert result.source == "edge-config"
        url = session.get.call_args.args[0]
        assert url == "https://edge-config.vercel.com/ecfg_abc123/item/tickers"
        assert session.get.call_args.kwargs["headers"] == {"Authorization": "Bearer read-token"}

    def test_missing_item(self):
        session = mock.MagicMock()
        session.get.return_value = _response(404)
        with pytest.raises(TickerSourceError):
            EdgeConfigTickerSource(CONNECTION, session=session).fetch()

    def test_empty_item_is_unusable(self):
        session = mock.MagicMock()
        session.get.return_value = _response(body=[])
        with pytest.raises(TickerSourceError):
            EdgeConfigTickerSource(CONNECTION, session=session).fetch()

    def test_server_error_is_retried(self):
        session = mock.MagicMock()
        session.get.side_effect = [_response(503), _response(body=["SPY"])]
        with mock.patch("trendwatch.sma.retry.time.sleep"):
            result = EdgeConfigTickerSource(CONNECTION, session=session).fetch()
        assert result.tickers == ["SPY"]
        assert session.get.call_count == 2

    def test_update_without_api_token(self):
        source = EdgeConfigTickerSource(CONNECTION, session=mock.MagicMock())
        with pytest.raises(ConfigurationMissingError) as excinfo:
            source.update(["AAPL"])
        assert "VERCEL_API_TOKEN" in str(excinfo.value)

    def test_update_upserts_item(self):
        session = mock.MagicMock()
        session.patch.return_value = _response(body={"status": "ok"})
        source = EdgeConfigTickerSource(CONNECTION, api_token="api", session=session)

        result = source.update(["aapl"])

        assert result.tickers == ["AAPL"]
        assert session.patch.call_args.args[0] == "https://api.vercel.com/v1/edge-config/ecfg_abc123/items"
        assert session.patch.call_args.kwargs["json"] == {
            "items": [{"operation": "upsert", "key": "tickers", "value": ["AAPL"]}],
        }

    def test_update_failure(self):
        session = mock.MagicMock()
        session.patch.return_value = _response(403, {"error": {"message": "Not authorized"}})
        source = EdgeConfigTickerSource(CONNECTION, api_token="api", session=session)
        with pytest.raises(TickerSourceError, match="Not authorized"):
            source.update(["AAPL"])

    def test_bad_connection_string(self):
        with pytest.raises(ConfigurationMissingError):
            EdgeConfigTickerSource("https://edge-config.vercel.com/ecfg_abc123")


class TestFallbackTickerSource:
    def test_falls_back_and_reports_error(self, tickers_file):
        primary = mock.Mock(spec=EdgeConfigTickerSource)
        primary.name = "edge-config"
        primary.fetch.side_effect = TickerSourceError("Edge Config has no usable 'tickers' item")
        source = FallbackTickerSource(primary, FileTickerSource(tickers_file))

        result = source.fetch()

        assert result.tickers == ["SPY", "QQQ"]
        assert result.source == "file"
        assert result.error == "Edge Config has no usable 'tickers' item"

    def test_empty_remote_list_falls_back_to_file(self, tickers_file):
        session = mock.MagicMock()
        session.get.return_value = _response(body=[])
        source = build_ticker_source(
            Settings(edge_config=CONNECTION, tickers_file=tickers_file), session=session,
        )

        result = source.fetch()

        assert result.tickers == ["SPY", "QQQ"]
        assert result.source == "file"
        assert "no usable 'tickers' item" in result.error

    def test_both_failing_raises_primary_error(self, tmp_path):
        primary_error = TickerSourceError("Edge Config has no usable 'tickers' item")
        primary = mock.Mock(spec=EdgeConfigTickerSource)
        primary.name = "edge-config"
        primary.fetch.side_effect = primary_error
        source = FallbackTickerSource(primary, FileTickerSource(tmp_path / "missing.json"))

        with pytest.raises(TickerSourceError) as excinfo:
            source.fetch()

        assert excinfo.value is primary_error
        assert isinstance(excinfo.value.__cause__, TickerSourceError)
        assert "missing.json" in str(excinfo.value.__cause__)

    def test_updates_go_to_primary(self, tickers_file):
        primary = mock.Mock(spec=EdgeConfigTickerSource)
        primary.update.return_value = TickerList(["AAPL"], "edge-config")
        source = FallbackTickerSource(primary, FileTickerSource(tickers_file))

        source.update(["AAPL"])

        primary.update.assert_called_once_with(["AAPL"])
        assert json.loads(tickers_file.read_text())["tickers"] == ["SPY", "QQQ"]


class TestBuildTickerSource:
    def test_file_only_without_edge_config(self, tickers_file):
        source = build_ticker_source(Settings(tickers_file=tickers_file))
        assert isinstance(source, FileTickerSource)

    def test_edge_config_with_fallback(self, tickers_file):
        source = build_ticker_source(Settings(edge_config=CONNECTION, tickers_file=tickers_file))
        assert isinstance(source, FallbackTickerSource)
        assert source.name == "edge-config"
