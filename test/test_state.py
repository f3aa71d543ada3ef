#!/usr/bin/env python3
import os
import tempfile
import threading
import unittest

from relay.config import parse_config
from relay.exceptions import ConfigError
from relay.services import HttpClient
from relay.state import ConfigState, StateHolder


class _TaggedTemplate:
    def __init__(self, tag):
        self.tag = tag


def _config(tag):
    return parse_config({"targets": {f"t{tag}": {"url": f"http://robot.local/{tag}"}}})


class TestStateHolder(unittest.TestCase):
    def test_starts_empty(self):
        holder = StateHolder()
        state = holder.snapshot()
        self.assertFalse(state.loaded)
        self.assertEqual(len(state.targets), 0)
        self.assertEqual(state.generation, 0)

    def test_update_publishes_whole_state(self):
        holder = StateHolder()
        config = _config(1)
        template = _TaggedTemplate(1)
        state = holder.update(config, template)

        self.assertIs(holder.snapshot(), state)
        self.assertIs(state.config, config)
        self.assertIs(state.template, template)
        self.assertIs(state.targets, config.targets)
        self.assertIsInstance(state.http_client, HttpClient)
        self.assertEqual(state.generation, 1)

        holder.update(_config(2), _TaggedTemplate(2))
        # o snapshot antigo continua inteiro para quem já o tinha
        self.assertEqual(list(state.targets), ["t1"])
        self.assertEqual(holder.snapshot().generation, 2)

    def test_each_generation_gets_new_http_client(self):
        holder = StateHolder()
        first = holder.update(_config(1), _TaggedTemplate(1)).http_client
        second = holder.update(_config(2), _TaggedTemplate(2)).http_client
        self.assertIsNot(first, second)

    def test_update_state(self):
        holder = StateHolder()
        state = ConfigState(config=_config(9), template=_TaggedTemplate(9), targets=_config(9).targets, http_client=None, generation=9)
        holder.update_state(state)
        self.assertIs(holder.snapshot(), state)

    def test_readers_never_see_mixed_generations(self):
        holder = StateHolder()
        holder.update(_config(0), _TaggedTemplate(0))
        stop = threading.Event()
        errors = []

        def reader():
            while not stop.is_set():
                state = holder.snapshot()
                tag = state.template.tag
                if list(state.targets) != [f"t{tag}"] or state.config.targets is not state.targets:
                    errors.append((tag, list(state.targets)))

        readers = [threading.Thread(target=reader) for _ in range(8)]
        for t in readers:
            t.start()
        try:
            for tag in range(1, 300):
                holder.update(_config(tag), _TaggedTemplate(tag))
        finally:
            stop.set()
            for t in readers:
                t.join()

        self.assertEqual(errors, [])
        self.assertEqual(holder.snapshot().template.tag, 299)


class TestReload(unittest.TestCase):
    def _write(self, path, content):
        with open(path, "w", encoding="utf-8") as fp:
            fp.write(content)

    def test_reload_and_failed_reload_keeps_previous(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "config.yml")
            self._write(path, "targets:\n  ops:\n    url: http://robot.local/send\n")
            holder = StateHolder()
            state = holder.reload(path)
            self.assertEqual(state.generation, 1)
            self.assertIn("ops", state.targets)

            self._write(path, "targets:\n  ops:\n    url: http://robot.local/send\n    message:\n      title: '{{ broken'\n")
            with self.assertRaises(ConfigError):
                holder.reload(path)
            self.assertIs(holder.snapshot(), state)

            self._write(path, "templates: [missing.tmpl]\ntargets:\n  ops:\n    url: http://robot.local/send\n")
            with self.assertRaises(ConfigError):
                holder.reload(path)
            self.assertIs(holder.snapshot(), state)

    def test_reload_with_unparsable_url_keeps_previous(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "config.yml")
            self._write(path, "targets:\n  ops:\n    url: http://robot.local/send\n")
            holder = StateHolder()
            state = holder.reload(path)

            for url in ("http://[::1/send", "http://robot.local:99999/send"):
                with self.subTest(url=url):
                    self._write(path, f"targets:\n  ops:\n    url: '{url}'\n")
                    with self.assertRaises(ConfigError):
                        holder.reload(path)
                    self.assertIs(holder.snapshot(), state)
                    self.assertEqual(holder.snapshot().generation, 1)


if __name__ == '__main__':
    unittest.main()
