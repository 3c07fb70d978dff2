#!/usr/bin/env python3
import json
import os
import tempfile
import threading
import unittest
from datetime import datetime, timezone

from downstream import ELASTICSEARCH_TEMPLATE, ROCKETCHAT_CONTENT, ROCKETCHAT_TEMPLATE, load_fixture

from gawa.errors import RenderError, TemplateLoadError
from gawa.models import decode_notification
from gawa.pipe import BytePipe
from gawa.templating import TemplateRenderer, date, join_labels, jsonstr, trunc


def render_streamed(renderer, record, capacity=8):
    pipe = BytePipe(capacity)
    t = threading.Thread(target=renderer.stream_into, args=(record, pipe), daemon=True)
    t.start()
    try:
        return b''.join(pipe.chunks())
    finally:
        t.join(5)


class TemplateFileMixin:
    def write_template(self, source):
        fd, path = tempfile.mkstemp(suffix='.j2')
        with os.fdopen(fd, 'w', encoding='utf-8') as fp:
            fp.write(source)
        self.addCleanup(os.remove, path)
        return path


class TestRocketChatTemplate(unittest.TestCase):
    def setUp(self):
        self.renderer = TemplateRenderer.from_file(ROCKETCHAT_TEMPLATE)
        self.record = decode_notification(load_fixture())

    def test_buffered_payload(self):
        content = self.renderer.render_bytes(self.record)
        self.assertEqual(content, ROCKETCHAT_CONTENT)
        self.assertIn(b'FIRING: Foo_Bar', content)
        self.assertIn(b'`foo1`', content)
        self.assertIn(b'`foo2-source`', content)
        # instância resolvida não aparece
        self.assertNotIn(b'foo3', content)
        json.loads(content)

    def test_streamed_matches_buffered(self):
        buffered = self.renderer.render_bytes(self.record)
        # pipe pequeno força várias escritas bloqueantes
        self.assertEqual(render_streamed(self.renderer, self.record, capacity=8), buffered)
        self.assertEqual(render_streamed(self.renderer, self.record, capacity=65536), buffered)

    def test_resolved_notification(self):
        payload = json.loads(load_fixture())
        payload['status'] = 'resolved'
        for alert in payload['alerts']:
            alert['status'] = 'resolved'
        record = decode_notification(json.dumps(payload).encode())

        content = self.renderer.render_bytes(record)

        self.assertIn(b'RESOLVED: Foo_Bar', content)
        self.assertIn(b'*Instances*:\\n', content)

    def test_escapes_json_strings(self):
        payload = json.loads(load_fixture())
        payload['commonAnnotations']['description'] = 'quote " and\nnewline'
        record = decode_notification(json.dumps(payload).encode())

        text = json.loads(self.renderer.render_bytes(record))['text']

        self.assertIn('quote " and\nnewline', text)


class TestElasticsearchTemplate(unittest.TestCase):
    def test_forwards_whole_notification(self):
        renderer = TemplateRenderer.from_file(ELASTICSEARCH_TEMPLATE)
        now = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        record = decode_notification(load_fixture(), now=now)

        document = json.loads(renderer.render_bytes(record))

        self.assertEqual(document['@timestamp'], '2024-01-02T03:04:05+00:00')
        self.assertEqual(document['receiver'], 'alertmanager2es')
        self.assertEqual(len(document['alerts']), 3)
        self.assertTrue(document['alerts'][0]['startsAt'].startswith('2017-02-02T16:51:13.507955'))
        self.assertEqual(render_streamed(renderer, record), renderer.render_bytes(record))


class TestTemplateLoading(TemplateFileMixin, unittest.TestCase):
    def test_missing_file(self):
        with self.assertRaises(TemplateLoadError):
            TemplateRenderer.from_file('/nonexistent/dir/missing.j2')

    def test_syntax_error(self):
        path = self.write_template('{% for alert in alerts %}{{ alert.status }}')
        with self.assertRaises(TemplateLoadError) as ctx:
            TemplateRenderer.from_file(path)
        self.assertIn('cannot parse template', str(ctx.exception))


class TestRenderErrors(TemplateFileMixin, unittest.TestCase):
    def setUp(self):
        path = self.write_template('{"receiver": "{{ receiver }}", "x": "{{ no_such_field }}"}')
        self.renderer = TemplateRenderer.from_file(path)
        self.record = decode_notification(load_fixture())

    def test_buffered_missing_field(self):
        with self.assertRaises(RenderError):
            self.renderer.render_bytes(self.record)

    def test_streamed_missing_field(self):
        with self.assertRaises(RenderError):
            render_streamed(self.renderer, self.record)


class TestHelpers(TemplateFileMixin, unittest.TestCase):
    def test_filters(self):
        self.assertEqual(jsonstr('a"b\\c'), 'a\\"b\\\\c')
        self.assertEqual(trunc('abcdef', 3), 'abc')
        self.assertEqual(trunc('abcdef', -2), 'ef')
        self.assertEqual(join_labels({'b': '2', 'a': '1'}), 'a=1 b=2')
        self.assertEqual(date('2017-02-02T16:51:13.5Z', '%d/%m/%Y %H:%M'), '02/02/2017 16:51')
        self.assertEqual(date(None), '')

    def test_helpers_available_in_template(self):
        path = self.write_template(
            '{{ receiver | upper }}|{{ common_labels | join_labels(",") }}'
            '|{{ alerts[0].starts_at | date("%Y") }}|{{ group_key | trunc(2) }}'
            '|{{ now().year > 2000 }}|{{ receiver | quote }}'
        )
        renderer = TemplateRenderer.from_file(path)
        record = decode_notification(load_fixture())

        content = renderer.render_bytes(record).decode()

        self.assertEqual(
            content,
            'ALERTMANAGER2ES|alertname=Foo_Bar,app=testapp,job=testjob|2017|{}|True|"alertmanager2es"',
        )


if __name__ == '__main__':
    unittest.main()
