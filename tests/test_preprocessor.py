from __future__ import annotations

import io
import json
import textwrap
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest import TestCase
from unittest.mock import patch

from goals_preprocessor import settings
from goals_preprocessor.__main__ import EXIT_CONFIG_ERROR, EXIT_OK, EXIT_UNSUPPORTED, main
from goals_preprocessor.book import iter_chapters, transform_book
from goals_preprocessor.engine.config import config_from_context
from goals_preprocessor.engine.rules import build_rule_set


def make_context(**goals_overrides):
    goals = {
        'command': 'goals-preprocessor',
        'ignore_users': ['@triagebot'],
        'links': {'Complete': 'https://img.shields.io/badge/Complete-green'},
        'linkifiers': {'#([0-9]+)': 'https://github.com/rust-lang/rust/issues/$1'},
        'users': {'@Nadrieril': '@Nadrieril'},
    }
    goals.update(goals_overrides)
    return {
        'root': '/book',
        'renderer': 'html',
        'mdbook_version': '0.4.40',
        'config': {
            'book': {'title': 'Rust Project Goals', 'src': 'src'},
            'preprocessor': {'goals': goals},
            'output': {'html': {'site-url': '/rust-project-goals/'}},
        },
    }


def chapter(name, content, path=None, sub_items=None):
    return {
        'Chapter': {
            'name': name,
            'content': content,
            'number': None,
            'sub_items': sub_items or [],
            'path': path,
            'source_path': path,
            'parent_names': [],
        }
    }


def make_book():
    return {
        'sections': [
            chapter('Intro', 'Welcome, see #1.', path='README.md'),
            'Separator',
            {'PartTitle': 'Goals'},
            chapter(
                '2024h2',
                'Goals for #2 by @Nadrieril and @triagebot',
                path='2024h2/README.md',
                sub_items=[chapter('Async', '![Complete][] #3', path='2024h2/async.md')],
            ),
            chapter('Draft', 'draft #4'),
        ],
        '__non_exhaustive': None,
    }


class BookTests(TestCase):
    def test_iter_chapters_walks_sub_items_in_order(self) -> None:
        names = [item['name'] for item in iter_chapters(make_book()['sections'])]
        self.assertEqual(names, ['Intro', '2024h2', 'Async', 'Draft'])

    def test_transform_book_rewrites_every_chapter(self) -> None:
        rules = build_rule_set(config_from_context(make_context()))
        book = transform_book(make_book(), rules, workers=2)
        contents = [item['content'] for item in iter_chapters(book['sections'])]
        self.assertEqual(
            contents,
            [
                'Welcome, see [#1](https://github.com/rust-lang/rust/issues/1).',
                'Goals for [#2](https://github.com/rust-lang/rust/issues/2) by @Nadrieril',
                '[![Complete](https://img.shields.io/badge/Complete-green)]'
                '(https://img.shields.io/badge/Complete-green) '
                '[#3](https://github.com/rust-lang/rust/issues/3)',
                'draft [#4](https://github.com/rust-lang/rust/issues/4)',
            ],
        )
        self.assertEqual(book['sections'][1], 'Separator')
        self.assertEqual(book['sections'][2], {'PartTitle': 'Goals'})

    def test_newer_book_layout_uses_items(self) -> None:
        rules = build_rule_set(config_from_context(make_context()))
        book = transform_book({'items': [chapter('Intro', '#9', path='README.md')]}, rules)
        self.assertEqual(
            book['items'][0]['Chapter']['content'],
            '[#9](https://github.com/rust-lang/rust/issues/9)',
        )


class CommandTests(TestCase):
    def run_main(self, argv, stdin_text=''):
        stdout = io.StringIO()
        with patch('sys.stdin', io.StringIO(stdin_text)), patch('sys.stdout', stdout):
            code = main(argv)
        return code, stdout.getvalue()

    def test_supports_known_renderers(self) -> None:
        self.assertEqual(self.run_main(['supports', 'html'])[0], EXIT_OK)
        self.assertEqual(self.run_main(['supports', 'markdown'])[0], EXIT_OK)
        self.assertEqual(self.run_main(['supports', 'epub'])[0], EXIT_UNSUPPORTED)

    def test_transform_round_trips_book_json(self) -> None:
        payload = json.dumps([make_context(), make_book()])
        code, output = self.run_main([], payload)
        self.assertEqual(code, EXIT_OK)
        book = json.loads(output)
        first = book['sections'][0]['Chapter']['content']
        self.assertEqual(first, 'Welcome, see [#1](https://github.com/rust-lang/rust/issues/1).')

    def test_configuration_error_exits_non_zero(self) -> None:
        context = make_context(linkifiers={'#([0-9]+': 'https://example.com/$1'})
        code, output = self.run_main([], json.dumps([context, make_book()]))
        self.assertEqual(code, EXIT_CONFIG_ERROR)
        self.assertEqual(output, '')

    def test_strict_badges_abort_the_run(self) -> None:
        context = make_context(strict_badges=True)
        book = {'sections': [chapter('A', '![Someday][]', path='a.md')]}
        code, output = self.run_main([], json.dumps([context, book]))
        self.assertEqual(code, EXIT_CONFIG_ERROR)
        self.assertEqual(output, '')

    def test_invalid_stdin(self) -> None:
        self.assertEqual(self.run_main([], 'not json')[0], EXIT_CONFIG_ERROR)

    def test_yaml_config_supplies_defaults(self) -> None:
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / 'goals.yaml'
            path.write_text(
                textwrap.dedent(
                    """
                    users:
                      "@old": "@New"
                    """
                ),
                encoding='utf-8',
            )
            book = {'sections': [chapter('A', 'by @old', path='a.md')]}
            code, output = self.run_main(['--config', str(path)], json.dumps([make_context(), book]))

        self.assertEqual(code, EXIT_OK)
        self.assertEqual(json.loads(output)['sections'][0]['Chapter']['content'], 'by @New')

    def test_missing_config_file(self) -> None:
        code, _ = self.run_main(['--config', '/nonexistent/goals.yaml'], '[{}, {}]')
        self.assertEqual(code, EXIT_CONFIG_ERROR)


class SettingsTests(TestCase):
    def test_environment_overrides(self) -> None:
        self.assertEqual(settings.WORKERS, 2)
        self.assertEqual(settings.log_level, 'DEBUG')

    def test_logs_never_touch_stdout(self) -> None:
        handler = settings.LOGGING['handlers']['console']
        self.assertEqual(handler['stream'], 'ext://sys.stderr')
