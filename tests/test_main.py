import logging
import sqlite3

import pytest

import api.main as main_module


def test_main_exits_when_store_cannot_open(tmp_path, monkeypatch, caplog):
    monkeypatch.setattr(main_module, "DB_PATH", str(tmp_path / "missing" / "understanding.db"))

    def must_not_serve(*args, **kwargs):
        pytest.fail("server started despite a broken store")

    monkeypatch.setattr(main_module.uvicorn, "run", must_not_serve)

    with pytest.raises(SystemExit) as exc:
        main_module.main()

    assert exc.value.code == 1
    assert "Failed to initialize database" in caplog.text


def test_main_serves_on_fixed_port_and_releases_store(tmp_path, monkeypatch, caplog):
    caplog.set_level(logging.INFO)
    monkeypatch.chdir(tmp_path)
    served = {}

    def fake_run(app, host, port):
        served.update(app=app, host=host, port=port)

    monkeypatch.setattr(main_module.uvicorn, "run", fake_run)

    main_module.main()

    assert served["host"] == "0.0.0.0"
    assert served["port"] == 8088
    assert served["app"].state.backend.conn is None
    assert "Server starting on :8088" in caplog.text

    conn = sqlite3.connect(tmp_path / "understanding.db")
    tables = [r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")]
    conn.close()
    assert "understanding_data" in tables
