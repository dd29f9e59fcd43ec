import json
import logging

from app.obs import logging as obs_logging


def _format(**extra) -> dict:
	record = logging.LogRecord("connect.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
	for key, value in extra.items():
		setattr(record, key, value)
	return json.loads(obs_logging.JSONLogFormatter().format(record))


def test_formatter_emits_context_and_extras():
	tokens = obs_logging.bind_context(request_id="req-1", user_id="u1")
	try:
		payload = _format(pin_id="p1")
	finally:
		obs_logging.reset_context(tokens)

	assert payload["msg"] == "hello world"
	assert payload["request_id"] == "req-1"
	assert payload["user_id"] == "u1"
	assert payload["pin_id"] == "p1"
	assert obs_logging.current_request_id() is None


def test_formatter_redacts_location_and_secrets():
	payload = _format(coordinates={"lat": 1.0, "lng": 2.0}, access_token="abc")

	assert payload["coordinates"] == "[redacted]"
	assert payload["access_token"] == "[redacted]"
