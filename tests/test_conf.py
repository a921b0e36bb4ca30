import datetime as dt

import pytest

from dddkit import conf


def test_write_config_twice(tmp_path):
    path = tmp_path / "test.toml"
    conf.write_config(conf.Bootstrap(server=conf.Server(http=conf.ServerHTTP(port=8080))), path)
    assert conf.setup_config(path).server.http.port == 8080
    conf.write_config(conf.Bootstrap(server=conf.Server(http=conf.ServerHTTP(port=8081))), path)
    assert conf.setup_config(path).server.http.port == 8081
    assert not (tmp_path / "test.toml.tmp").exists()


def test_default_config_round_trip(tmp_path):
    path = tmp_path / "config.toml"
    original = conf.default_config()
    conf.write_config(original, path)
    assert conf.setup_config(path) == original


def test_default_config_values():
    cfg = conf.default_config()
    assert cfg.server.http.port == 8080
    assert cfg.server.http.timeout == dt.timedelta(seconds=30)
    assert len(cfg.server.http.jwt_secret) == 32
    assert cfg.server.http.pprof.access_ips == ["::1", "127.0.0.1"]
    assert cfg.data.database.dsn == "./configs/data.db"
    assert cfg.log.max_age == dt.timedelta(days=7)
    assert cfg.log.rotation_size == 50


def test_internal_fields_not_written(tmp_path):
    path = tmp_path / "c.toml"
    cfg = conf.default_config()
    cfg.debug = True
    cfg.build_version = "1.2.3"
    conf.write_config(cfg, path)
    loaded = conf.setup_config(path)
    assert loaded.debug is False
    assert loaded.build_version == ""
    assert "1.2.3" not in path.read_text(encoding="utf-8")


def test_keys_match_case_insensitively(tmp_path):
    path = tmp_path / "c.toml"
    path.write_text('[server.http]\nport = 9000\ntimeout = "5s"\n', encoding="utf-8")
    cfg = conf.setup_config(path)
    assert cfg.server.http.port == 9000
    assert cfg.server.http.timeout == dt.timedelta(seconds=5)
    assert cfg.log.level == ""


def test_type_mismatch(tmp_path):
    path = tmp_path / "c.toml"
    path.write_text('[Server.HTTP]\nPort = "x"\n', encoding="utf-8")
    with pytest.raises(ValueError):
        conf.setup_config(path)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        conf.setup_config(tmp_path / "missing.toml")


@pytest.mark.parametrize(
    "text, expected",
    [
        ("30s", dt.timedelta(seconds=30)),
        ("1h30m", dt.timedelta(hours=1, minutes=30)),
        ("1.5h", dt.timedelta(minutes=90)),
        ("200ms", dt.timedelta(milliseconds=200)),
        ("0", dt.timedelta(0)),
        ("-2s", dt.timedelta(seconds=-2)),
    ],
)
def test_parse_duration(text, expected):
    assert conf.parse_duration(text) == expected


@pytest.mark.parametrize("text", ["", "abc", "10", "5x"])
def test_parse_duration_invalid(text):
    with pytest.raises(ValueError):
        conf.parse_duration(text)


@pytest.mark.parametrize(
    "value, expected",
    [
        (dt.timedelta(seconds=30), "30s"),
        (dt.timedelta(hours=6), "6h0m0s"),
        (dt.timedelta(milliseconds=200), "200ms"),
        (dt.timedelta(0), "0s"),
    ],
)
def test_format_duration(value, expected):
    assert conf.format_duration(value) == expected


@pytest.mark.parametrize(
    "value",
    [
        dt.timedelta(days=7),
        dt.timedelta(minutes=2, seconds=3),
        dt.timedelta(seconds=1, microseconds=500000),
        dt.timedelta(microseconds=1500),
        dt.timedelta(microseconds=7),
    ],
)
def test_duration_round_trip(value):
    assert conf.parse_duration(conf.format_duration(value)) == value