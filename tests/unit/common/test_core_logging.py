from cloudwarden.core.logging import credential_redactor, setup_logging


def test_redactor_masks_credentials_recursively():
    event = {
        "event": "cloud_account_loaded",
        "cloud_account_id": 1,
        "credentials": {"aws_access_key_id": "AK"},
        "payload": {
            "provider": "GCP",
            "private_key": "-----BEGIN",
            "nested": [{"client_secret": "s", "project_id": "p"}],
        },
        "Session-Token": "tok",
    }

    redacted = credential_redactor(None, "info", event)

    assert redacted["credentials"] == "[REDACTED]"
    assert redacted["payload"]["private_key"] == "[REDACTED]"
    assert redacted["payload"]["nested"][0] == {"client_secret": "[REDACTED]", "project_id": "p"}
    assert redacted["Session-Token"] == "[REDACTED]"
    assert redacted["cloud_account_id"] == 1
    assert redacted["event"] == "cloud_account_loaded"


def test_redactor_leaves_safe_events_alone():
    event = {"event": "resources_reconciled", "inserted": 2, "errors": []}

    assert credential_redactor(None, "info", event) == event


def test_setup_logging_is_idempotent():
    setup_logging()
    setup_logging()
