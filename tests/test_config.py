import pytest

from predictor_signal_bot.config import Config, load_config, validate_config
from predictor_signal_bot.main import build_provider, build_store
from predictor_signal_bot.store.memory import InMemorySignalStore
from predictor_signal_bot.store.sqlite import SQLiteSignalStore
from predictor_signal_bot.store.supabase import SupabaseSignalStore


def _write(tmp_path, text: str) -> str:
    p = tmp_path / "config.yaml"
    p.write_text(text, encoding="utf-8")
    return str(p)


def test_defaults_are_valid():
    cfg = Config()
    validate_config(cfg)
    assert cfg.strategy.symbols == ["BTC", "ETH", "SOL"]
    assert cfg.strategy.timeframes == ["15m", "1h", "daily"]
    assert cfg.strategy.aggressiveness == "aggressive"
    assert cfg.schedule.intervals_s == {"15m": 60, "1h": 300, "daily": 900}


def test_load_yaml_with_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://abc.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_KEY", "secret")
    monkeypatch.setenv("SIGNAL_AGGRESSIVENESS", "moderate")
    path = _write(tmp_path, """
app:
  log_level: DEBUG
strategy:
  symbols: [btc, eth]
  timeframes: ["1h"]
store:
  type: supabase
schedule:
  price_interval_s: 10
  intervals_s:
    1h: 120
""")
    cfg = load_config(path)
    assert cfg.app.log_level == "DEBUG"
    assert cfg.strategy.symbols == ["BTC", "ETH"]
    assert cfg.strategy.aggressiveness == "moderate"
    assert cfg.store.url == "https://abc.supabase.co"
    assert cfg.store.service_key == "secret"
    assert cfg.schedule.price_interval_s == 10
    assert cfg.schedule.intervals_s == {"15m": 60, "1h": 120, "daily": 900}


def test_invalid_config_rejected(tmp_path, monkeypatch):
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_SERVICE_KEY", raising=False)
    monkeypatch.delenv("SIGNAL_AGGRESSIVENESS", raising=False)
    with pytest.raises(ValueError, match="unsupported timeframe 4h"):
        load_config(_write(tmp_path, "strategy:\n  timeframes: ['4h']\n"))
    with pytest.raises(ValueError, match="supabase store needs"):
        load_config(_write(tmp_path, "store:\n  type: supabase\n"))
    with pytest.raises(ValueError, match="unknown aggressiveness"):
        load_config(_write(tmp_path, "strategy:\n  aggressiveness: wild\n"))


def test_empty_file_gives_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("SIGNAL_AGGRESSIVENESS", raising=False)
    cfg = load_config(_write(tmp_path, ""))
    assert cfg.store.type == "memory"


def test_builders(tmp_path):
    cfg = Config()
    provider = build_provider(cfg)
    assert [s.base_url for s in provider.sources] == ["https://api.binance.com", "https://api.binance.us"]

    assert isinstance(build_store(cfg.store), InMemorySignalStore)
    cfg.store.type = "sqlite"
    cfg.store.path = str(tmp_path / "s.db")
    assert isinstance(build_store(cfg.store), SQLiteSignalStore)
    cfg.store.type = "supabase"
    cfg.store.url = "https://abc.supabase.co"
    cfg.store.service_key = "k"
    assert isinstance(build_store(cfg.store), SupabaseSignalStore)


def test_empty_sections_fall_back_to_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("SIGNAL_AGGRESSIVENESS", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    cfg = load_config(_write(tmp_path, "app:\nprovider:\nstrategy:\nstore:\nschedule:\n"))
    assert cfg.app == Config().app
    assert cfg.strategy.timeframes == ["15m", "1h", "daily"]
    assert cfg.schedule.price_interval_s == 30
    assert cfg.schedule.intervals_s["1h"] == 300
