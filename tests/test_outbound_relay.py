"""Tests for the Slack -> Twilio webhook."""

import json

from conftest import CHANNEL, event_body, slack_headers

PATH = "/api/slack-to-twilio"

ROOT_MESSAGE = {
    "text": ":iphone: *SMS from +15550000000*",
    "metadata": {
        "event_type": "sms_received",
        "event_payload": {"phone_from": "+15550000000", "twilio_message_sid": "SM1"},
    },
}


def _post(client, body: bytes, **kwargs):
    return client.post(PATH, content=body, headers=slack_headers(body, **kwargs))


def test_url_verification_needs_no_signature(client):
    body = json.dumps({"type": "url_verification", "challenge": "abc123"})
    resp = client.post(PATH, content=body, headers={"Content-Type": "application/json"})

    assert resp.status_code == 200
    assert resp.json() == {"challenge": "abc123"}


def test_reply_is_sent_as_sms(client, slack_client, twilio_client):
    slack_client.conversations_replies.return_value = {"ok": True, "messages": [ROOT_MESSAGE]}
    body = event_body(text="reply text", thread_ts="1700000000.000100")

    resp = _post(client, body)

    assert resp.status_code == 200
    assert resp.json() == {"ok": True}

    twilio_client.messages.create.assert_called_once_with(
        to="+15550000000", from_="+15559990000", body="reply text"
    )
    assert slack_client.conversations_replies.call_args.kwargs["ts"] == "1700000000.000100"

    slack_client.reactions_add.assert_awaited_once_with(
        channel=CHANNEL, name="white_check_mark", timestamp="1700000100.000200"
    )

    slack_client.chat_postMessage.assert_awaited_once()
    confirmation = slack_client.chat_postMessage.call_args.kwargs
    assert confirmation["thread_ts"] == "1700000000.000100"
    assert "+15550000000" in confirmation["text"]
    assert "SM999" in confirmation["text"]
    assert confirmation["blocks"][1]["type"] == "context"


def test_top_level_message_uses_own_ts_as_anchor(client, slack_client):
    slack_client.conversations_replies.return_value = {"ok": True, "messages": [ROOT_MESSAGE]}

    _post(client, event_body(text="hi"))

    assert slack_client.conversations_replies.call_args.kwargs["ts"] == "1700000100.000200"


def test_other_channel_is_ignored(client, slack_client, twilio_client):
    resp = _post(client, event_body(text="reply text", channel="C0OTHER"))

    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    twilio_client.messages.create.assert_not_called()
    slack_client.conversations_replies.assert_not_awaited()


def test_bot_messages_are_ignored(client, slack_client, twilio_client):
    for event in ({"text": "x", "subtype": "bot_message"}, {"text": "x", "bot_id": "B1"}, {"text": ""}):
        resp = _post(client, event_body(**event))
        assert resp.status_code == 200

    twilio_client.messages.create.assert_not_called()
    slack_client.conversations_replies.assert_not_awaited()


def test_unresolved_thread_is_a_noop(client, slack_client, twilio_client):
    slack_client.conversations_replies.return_value = {"ok": True, "messages": [{"text": "hello team"}]}

    resp = _post(client, event_body(text="reply text", thread_ts="1.2"))

    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    twilio_client.messages.create.assert_not_called()
    slack_client.reactions_add.assert_not_awaited()


def test_bad_signature_is_rejected(client, twilio_client):
    body = event_body(text="reply text")
    headers = slack_headers(body)
    headers["X-Slack-Signature"] = "v0=" + "0" * 64

    resp = client.post(PATH, content=body, headers=headers)

    assert resp.status_code == 403
    assert resp.json() == {"error": "Unauthorized"}
    twilio_client.messages.create.assert_not_called()


def test_stale_timestamp_is_rejected(client):
    import time

    resp = _post(client, event_body(text="reply text"), timestamp=int(time.time()) - 301)

    assert resp.status_code == 403


def test_other_envelope_types_are_accepted(client):
    body = json.dumps({"type": "app_rate_limited"}).encode()
    resp = _post(client, body)

    assert resp.status_code == 200
    assert resp.json() == {"ok": True}


def test_twilio_failure_surfaces_as_500(client, slack_client, twilio_client):
    slack_client.conversations_replies.return_value = {"ok": True, "messages": [ROOT_MESSAGE]}
    twilio_client.messages.create.side_effect = RuntimeError("Unable to create record")

    resp = _post(client, event_body(text="reply text", thread_ts="1.2"))

    assert resp.status_code == 500
    assert resp.json() == {"error": "Unable to create record"}
    slack_client.reactions_add.assert_not_awaited()


def test_invalid_json_is_400(client):
    resp = client.post(PATH, content=b"not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400


def test_event_callback_without_event_is_400(client):
    body = json.dumps({"type": "event_callback"}).encode()
    assert _post(client, body).status_code == 400


def test_unsigned_event_without_event_is_403(client):
    body = json.dumps({"type": "event_callback"}).encode()
    resp = client.post(PATH, content=body, headers={"Content-Type": "application/json"})
    assert resp.status_code == 403


def test_malformed_event_checked_after_signature(client, twilio_client):
    body = json.dumps({"type": "event_callback", "event": "x"}).encode()

    unsigned = client.post(PATH, content=body, headers={"Content-Type": "application/json"})
    assert unsigned.status_code == 403
    assert unsigned.json() == {"error": "Unauthorized"}

    signed = _post(client, body)
    assert signed.status_code == 400
    twilio_client.messages.create.assert_not_called()


def test_challenge_is_echoed_verbatim(client):
    body = json.dumps({"type": "url_verification", "challenge": 12345})
    resp = client.post(PATH, content=body, headers={"Content-Type": "application/json"})

    assert resp.status_code == 200
    assert resp.json() == {"challenge": 12345}


def test_non_post_is_rejected(client):
    resp = client.put(PATH, content=b"{}")
    assert resp.status_code == 405
    assert resp.json() == {"error": "Method not allowed"}
