import importlib

main_module = importlib.import_module("render_worker.__main__")


def test_server_log_level_follows_settings(monkeypatch, settings):
    runs = []
    settings = settings.model_copy(update={"log_level": "WARNING", "port": 8123})
    monkeypatch.setattr(main_module, "get_settings", lambda: settings)
    monkeypatch.setattr(main_module.uvicorn, "run", lambda app, **kwargs: runs.append(kwargs))

    main_module.main()

    assert runs == [{"host": "0.0.0.0", "port": 8123, "log_level": "warning"}]
