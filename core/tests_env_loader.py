"""
Tests for .env loading, typed environment accessors and settings selection.
"""

import importlib
import os
import tempfile
from pathlib import Path
from unittest import mock

from django.test import SimpleTestCase

from .env_loader import EnvironmentLoader


class EnvironmentLoaderTestCase(SimpleTestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.env_file = Path(self.tmpdir.name) / '.env'

    def load(self, text, environ=None):
        self.env_file.write_text(text, encoding='utf-8')
        with mock.patch.dict(os.environ, environ or {}, clear=True):
            loader = EnvironmentLoader(self.env_file)
            return loader, dict(os.environ)

    def test_reads_key_values_and_strips_quotes(self):
        loader, environ = self.load('# comment\nDB_NAME="rte"\nDB_USER=\'learner\'\n\nbroken line\n')
        self.assertEqual(environ['DB_NAME'], 'rte')
        self.assertEqual(environ['DB_USER'], 'learner')
        self.assertEqual(set(loader.loaded_variables), {'DB_NAME', 'DB_USER'})

    def test_process_environment_wins(self):
        loader, environ = self.load('DB_NAME=from_file\n', environ={'DB_NAME': 'from_process'})
        self.assertEqual(environ['DB_NAME'], 'from_process')
        self.assertNotIn('DB_NAME', loader.loaded_variables)

    def test_missing_file_is_tolerated(self):
        loader = EnvironmentLoader(Path(self.tmpdir.name) / 'absent.env')
        self.assertEqual(loader.loaded_variables, {})

    def test_typed_accessors(self):
        loader = EnvironmentLoader(Path(self.tmpdir.name) / 'absent.env')
        environ = {
            'FLAG': 'Yes',
            'COUNT': '3',
            'BAD_COUNT': 'three',
            'INTERVAL': '2.5',
            'HOSTS': 'a.example.com, b.example.com,,',
        }
        with mock.patch.dict(os.environ, environ, clear=True):
            self.assertTrue(loader.get_bool('FLAG'))
            self.assertFalse(loader.get_bool('MISSING'))
            self.assertEqual(loader.get_int('COUNT'), 3)
            self.assertEqual(loader.get_int('BAD_COUNT', 7), 7)
            self.assertEqual(loader.get_float('INTERVAL'), 2.5)
            self.assertEqual(loader.get_list('HOSTS'), ['a.example.com', 'b.example.com'])
            self.assertEqual(loader.get_list('MISSING', default=['x']), ['x'])

    def test_required_variables(self):
        loader = EnvironmentLoader(Path(self.tmpdir.name) / 'absent.env')
        with mock.patch.dict(os.environ, {'DB_NAME': 'rte'}, clear=True):
            with self.assertRaises(ValueError) as cm:
                loader.validate_required_variables(['DB_NAME', 'DB_PASSWORD'])
            self.assertIn('DB_PASSWORD', str(cm.exception))
            with self.assertRaises(ValueError):
                loader.get('DJANGO_SECRET_KEY', required=True)


class SettingsSelectionTestCase(SimpleTestCase):

    def reload_settings(self, environ):
        import RTE_Project.settings as settings_package
        with mock.patch.dict(os.environ, environ, clear=True):
            return importlib.reload(settings_package)

    def test_test_module_selected_without_django_env(self):
        settings_package = self.reload_settings({'DJANGO_SETTINGS_MODULE': 'RTE_Project.settings.test'})
        self.assertEqual(settings_package.DJANGO_ENV, 'test')
        self.assertEqual(settings_package.ENVIRONMENT, 'test')

    def test_django_env_selects_test_module(self):
        settings_package = self.reload_settings({'DJANGO_ENV': 'TEST'})
        self.assertEqual(settings_package.ENVIRONMENT, 'test')
