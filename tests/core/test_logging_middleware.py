from api.middleware.logging import LoggingMiddleware


def test_sensitive_fields_are_redacted_recursively():
    body = {
        "theme": "Go internals",
        "Token": "abc",
        "nested": [{"password": "hunter2", "message": "kept"}],
    }

    assert LoggingMiddleware._sanitize_data(body) == {
        "theme": "Go internals",
        "Token": "***",
        "nested": [{"password": "***", "message": "kept"}],
    }


def test_non_container_values_pass_through():
    assert LoggingMiddleware._sanitize_data("plain text") == "plain text"
    assert LoggingMiddleware._sanitize_data(3) == 3
