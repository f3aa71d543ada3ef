#!/usr/bin/env python3
import unittest
from unittest import mock

import requests
import urllib3

from relay.config import parse_config
from relay.exceptions import TransportError
from relay.fanout import forward_copy, send_third_api
from relay.models import WebhookMessage

TARGET = parse_config({"targets": {"ops": {"url": "https://robot.local/send?access_token=abc"}}}).targets["ops"]
MESSAGE = WebhookMessage.from_dict({"status": "firing", "receiver": "ops", "alerts": [{"status": "firing"}]})
SINK = "http://sink.local/alerts"


class TestSendThirdApi(unittest.TestCase):
    def test_empty_url(self):
        with self.assertRaises(TransportError):
            send_third_api(MESSAGE, "")

    @mock.patch("relay.services.requests.post")
    def test_only_200_is_success(self, post):
        post.return_value = mock.Mock(status_code=200)
        self.assertTrue(send_third_api(MESSAGE, SINK))

        post.return_value = mock.Mock(status_code=204)
        with self.assertRaises(TransportError):
            send_third_api(MESSAGE, SINK)
        self.assertEqual(post.call_count, 2)


class TestForwardCopy(unittest.TestCase):
    @mock.patch("relay.services.requests.post")
    def test_disabled_without_url(self, post):
        forward_copy(MESSAGE, TARGET, url="", source="prod")
        post.assert_not_called()

    @mock.patch("relay.services.requests.post")
    def test_body_is_raw_payload_with_extras(self, post):
        post.return_value = mock.Mock(status_code=200)
        forward_copy(MESSAGE, TARGET, url=SINK, source="prod")

        args, kwargs = post.call_args
        self.assertEqual(args[0], SINK)
        self.assertEqual(kwargs["headers"]["Content-Type"], "application/json")
        body = kwargs["json"]
        self.assertEqual(body["source"], "prod")
        self.assertEqual(body["dingtalkWebhookUrl"], TARGET.url)
        self.assertEqual(body["receiver"], "ops")
        self.assertEqual(len(body["alerts"]), 1)
        # o payload original não é alterado
        self.assertEqual(MESSAGE.source, "")

    @mock.patch("relay.services.requests.post")
    def test_failures_are_logged_not_raised(self, post):
        post.side_effect = requests.ConnectionError("refused")
        with self.assertLogs("relay.fanout", level="ERROR") as logs:
            self.assertIsNone(forward_copy(MESSAGE, TARGET, url=SINK, source="prod"))
        self.assertIn("sink secundário", logs.output[0])

        post.side_effect = None
        post.return_value = mock.Mock(status_code=500)
        with self.assertLogs("relay.fanout", level="ERROR"):
            forward_copy(MESSAGE, TARGET, url=SINK, source="prod")

    @mock.patch("relay.services.requests.post")
    def test_unexpected_errors_are_logged_not_raised(self, post):
        for error in (urllib3.exceptions.LocationParseError("sink.local"), RuntimeError("boom")):
            with self.subTest(error=error):
                post.side_effect = error
                with self.assertLogs("relay.fanout", level="ERROR"):
                    self.assertIsNone(forward_copy(MESSAGE, TARGET, url=SINK, source="prod"))

    @mock.patch("relay.services.requests.post")
    def test_unparsable_sink_url(self, post):
        with self.assertLogs("relay.fanout", level="ERROR"):
            self.assertIsNone(forward_copy(MESSAGE, TARGET, url="http://[::1/", source="prod"))
        post.assert_not_called()


if __name__ == '__main__':
    unittest.main()
