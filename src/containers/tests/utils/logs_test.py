# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#      http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Tests for the logs module.

  For running all the tests, use (from the root of the project):
  python -m unittest discover -s src/containers/tests -p logs_test.py -v
"""

import json
import logging
import os
import unittest
from unittest import mock

from containers.utils import logs


class TruncateTest(unittest.TestCase):
  """Tests for truncate."""

  def test_short(self):
    self.assertEqual('abc', logs.truncate('abc', 10))

  def test_long(self):
    self.assertEqual('12\n...6 characters truncated...\n90',
                     logs.truncate('1234567890', 4))

  def test_not_a_string(self):
    self.assertEqual(5, logs.truncate(5, 1))


class AuditTest(unittest.TestCase):
  """Tests for audit."""

  def test_extras_rendered(self):
    with self.assertLogs(logs.AUDIT_LOGGER_NAME, level='INFO') as context:
      logs.audit(
          'Bitwarden backup started:', profile='work', organization=None)

    self.assertEqual(1, len(context.output))
    self.assertIn('Bitwarden backup started: profile=work', context.output[0])
    self.assertNotIn('organization', context.output[0])

  def test_extras_attached(self):
    with self.assertLogs(logs.AUDIT_LOGGER_NAME, level='INFO') as context:
      logs.audit('Job completed:', duration='1.00s')

    self.assertEqual({'duration': '1.00s'}, context.records[0].extras)


class EmitTest(unittest.TestCase):
  """Tests for emit."""

  def setUp(self):
    super().setUp()
    self.mock_logger = mock.Mock()
    self.enterContext(
        mock.patch.object(logs, 'get_logger', return_value=self.mock_logger))

  def test_emit(self):
    logs.emit(logging.INFO, 'msg', profile='work')

    self.mock_logger.log.assert_called_once_with(
        logging.INFO,
        'msg profile=work',
        exc_info=None,
        extra={'extras': {
            'profile': 'work'
        }})


class JsonFormatterTest(unittest.TestCase):
  """Tests for JsonFormatter."""

  def test_format(self):
    record = logging.LogRecord('containers', logging.INFO, __file__, 1,
                               'hello %s', ('world',), None)
    record.extras = {'profile': 'work'}

    entry = json.loads(logs.JsonFormatter().format(record))

    self.assertEqual('hello world', entry['message'])
    self.assertEqual('INFO', entry['severity'])
    self.assertEqual({'profile': 'work'}, entry['extras'])


class ConfigDictTest(unittest.TestCase):
  """Tests for get_logging_config_dict."""

  def test_default(self):
    with mock.patch.dict(os.environ, {}, clear=True):
      config_dict = logs.get_logging_config_dict('containers')

    self.assertEqual(['console', 'audit'], list(config_dict['handlers']))
    self.assertEqual('ext://sys.stderr',
                     config_dict['handlers']['audit']['stream'])
    self.assertFalse(
        config_dict['loggers'][logs.AUDIT_LOGGER_NAME]['propagate'])

  def test_json_and_file(self):
    with mock.patch.dict(os.environ, {
        'LOG_FORMAT': 'json',
        'LOG_TO_FILE': 'True'
    }):
      config_dict = logs.get_logging_config_dict('containers')

    self.assertEqual('json', config_dict['handlers']['console']['formatter'])
    self.assertIn('audit_file', config_dict['handlers'])
    self.assertTrue(config_dict['handlers']['audit_file']['filename'].endswith(
        'audit.log'))


if __name__ == '__main__':
  unittest.main()
