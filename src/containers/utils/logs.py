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
"""Logging functions.

Two loggers are configured: the application logger (diagnostics) and the
audit logger, which receives exactly one line per job launch and one per job
completion. Both write to stderr so that job output on stdout stays clean.
"""

import datetime
import json
import logging
from logging import config
import os
import sys
from typing import Any

from containers.utils import environment

LOG_MESSAGE_LIMIT = 100000
LOCAL_LOG_LIMIT = 500000
LOG_DIR = os.path.expanduser('~/.containers/logs')

ROOT_LOGGER_NAME = 'containers'
AUDIT_LOGGER_NAME = 'containers.audit'

_logger = None
_default_extras = {}


def _json_logging_enabled():
  return environment.get_value('LOG_FORMAT', '') == 'json'


def _file_logging_enabled():
  """Return bool True when logging to ~/.containers/logs is requested."""
  return bool(environment.get_value('LOG_TO_FILE', False))


def set_logger(logger):
  """Set the logger."""
  global _logger
  _logger = logger


def truncate(msg, limit):
  """We need to truncate the message in the middle if it gets too long."""
  if not isinstance(msg, str) or len(msg) <= limit:
    return msg

  half = limit // 2
  return '\n'.join([
      msg[:half],
      '...%d characters truncated...' % (len(msg) - limit), msg[-half:]
  ])


def format_extras(extras: dict[str, Any]) -> str:
  """Renders extras as space separated key=value pairs."""
  return ' '.join(
      f'{key}={value}' for key, value in extras.items() if value is not None)


class JsonFormatter(logging.Formatter):
  """Formats log records as JSON."""

  def format(self, record: logging.LogRecord) -> str:
    """Format LogEntry into JSON string."""
    entry = {
        'message':
            truncate(record.getMessage(), LOG_MESSAGE_LIMIT),
        'created':
            datetime.datetime.fromtimestamp(
                record.created, tz=datetime.timezone.utc).isoformat(),
        'severity':
            record.levelname,
        'name':
            record.name,
        'pid':
            os.getpid(),
    }

    extras = getattr(record, 'extras', {})
    if extras:
      entry['extras'] = {
          k: truncate(v, LOG_MESSAGE_LIMIT) for k, v in extras.items()
      }

    if record.exc_info and record.exc_info[0]:
      entry['message'] += '\n' + self.formatException(record.exc_info)

    return json.dumps(entry, default=_handle_unserializable)


def _handle_unserializable(unserializable: Any) -> str:
  try:
    return str(unserializable, 'utf-8')
  except TypeError:
    return str(unserializable)


def get_handler_config(filename, backup_count):
  """Get rotating file handler config."""
  return {
      'class': 'logging.handlers.RotatingFileHandler',
      'level': logging.INFO,
      'formatter': 'json' if _json_logging_enabled() else 'simple',
      'filename': os.path.join(LOG_DIR, filename),
      'maxBytes': LOCAL_LOG_LIMIT,
      'backupCount': backup_count,
      'encoding': 'utf8',
  }


def get_logging_config_dict(name, level=logging.INFO):
  """Get config dict for the logger `name` and the audit logger."""
  console_formatter = 'json' if _json_logging_enabled() else 'simple'
  audit_formatter = 'json' if _json_logging_enabled() else 'audit'

  handlers = {
      'console': {
          'class': 'logging.StreamHandler',
          'level': level,
          'formatter': console_formatter,
          'stream': 'ext://sys.stderr',
      },
      'audit': {
          'class': 'logging.StreamHandler',
          'level': logging.INFO,
          'formatter': audit_formatter,
          'stream': 'ext://sys.stderr',
      },
  }
  app_handlers = ['console']
  audit_handlers = ['audit']

  if _file_logging_enabled():
    handlers['file'] = get_handler_config(f'{name}.log', 3)
    handlers['audit_file'] = get_handler_config('audit.log', 10)
    app_handlers.append('file')
    audit_handlers.append('audit_file')

  return {
      'version': 1,
      'disable_existing_loggers': False,
      'formatters': {
          'simple': {
              'format': ('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
          },
          'audit': {
              'format': '[AUDIT] %(asctime)s %(message)s',
              'datefmt': '%Y-%m-%dT%H:%M:%S%z',
          },
          'json': {
              '()': JsonFormatter,
          },
      },
      'handlers': handlers,
      'loggers': {
          name: {
              'handlers': app_handlers,
              'level': level,
          },
          AUDIT_LOGGER_NAME: {
              'handlers': audit_handlers,
              'level': logging.INFO,
              'propagate': False,
          },
      },
  }


def configure(name=ROOT_LOGGER_NAME, level=logging.WARNING, extras=None):
  """Set up the application and audit loggers.

  |extras| will be included by emit() in log messages.
  """
  if _file_logging_enabled():
    os.makedirs(LOG_DIR, exist_ok=True)

  config.dictConfig(get_logging_config_dict(name, level))
  set_logger(logging.getLogger(name))

  global _default_extras
  _default_extras = extras or {}


def get_logger():
  """Return logger. We need this method because we need to mock logger."""
  if _logger:
    return _logger

  return logging.getLogger(ROOT_LOGGER_NAME)


def emit(level, message, exc_info=None, **extras):
  """Log a message with extras attached to the record."""
  logger = get_logger()

  all_extras = _default_extras.copy()
  all_extras.update(extras)

  rendered = message
  if all_extras:
    rendered += ' ' + format_extras(all_extras)

  logger.log(
      level,
      truncate(rendered, LOG_MESSAGE_LIMIT),
      exc_info=exc_info,
      extra={'extras': all_extras})


def info(message, **extras):
  """Logs an informational message."""
  emit(logging.INFO, message, **extras)


def warning(message, **extras):
  """Logs the warning message."""
  emit(logging.WARNING, message, exc_info=sys.exc_info(), **extras)


def audit(message, **extras):
  """Writes one audit line. Callers must pass already redacted values."""
  rendered = message
  if extras:
    rendered += ' ' + format_extras(extras)

  logging.getLogger(AUDIT_LOGGER_NAME).info(
      truncate(rendered, LOG_MESSAGE_LIMIT), extra={'extras': extras})
