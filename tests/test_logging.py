import json
import logging

from retrade.core import get_logger, set_request_context, setup_logging
from retrade.core.logging_config import request_id_var, user_id_var

def test_file_logging_writes_json_with_request_context(tmp_path):
    log_file = tmp_path / "retrade.log"
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging("retrade", level="INFO", enable_console=False, enable_file=True, log_file=str(log_file))
        set_request_context(request_id="req-1", user_id="user-9")
        get_logger("retrade.checkout").info("Order placed")
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers = saved_handlers
        root.setLevel(saved_level)
        set_request_context()

    records = [json.loads(line) for line in log_file.read_text().splitlines()]
    assert records[0]["message"] == "Logging initialized"
    assert records[0]["custom"]["handlers"]["file"] is True
    assert records[-1]["message"] == "Order placed"
    assert records[-1]["service"] == "retrade"
    assert records[-1]["trace"] == {"request_id": "req-1", "user_id": "user-9"}

def test_set_request_context_clears_previous_user():
    set_request_context(request_id="req-1", user_id="user-9")
    set_request_context(request_id="req-2")
    assert request_id_var.get() == "req-2"
    assert user_id_var.get() is None
    set_request_context()
