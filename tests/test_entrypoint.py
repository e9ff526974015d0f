from status_relay import __main__ as entrypoint
from status_relay import config


def test_main_runs_uvicorn_with_configured_app(monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(entrypoint.uvicorn, "run", lambda *args, **kwargs: calls.append((args, kwargs)))

    entrypoint.main()

    assert calls == [
        (
            ("status_relay.main:app",),
            {"host": config.HOST, "port": config.PORT, "log_level": config.LOG_LEVEL.lower()},
        )
    ]
