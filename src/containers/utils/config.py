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
"""Manages the containers configuration files.

User settings (image overrides, exit code conventions) are stored in JSON at
'~/.containers/config.json'. Batch backup profiles are read from a YAML file
given on the command line.
"""

import json
import os

import yaml

from containers.utils import errors
from containers.utils.batch import BatchProfile

CONFIG_DIR = os.path.expanduser('~/.containers')
CONFIG_FILE = os.path.join(CONFIG_DIR, 'config.json')

DEFAULT_SETTINGS = {
    'exit_codes': {
        'auth_failure': 1,
        'action_failure': 2,
    },
    'images': {
        'pdf_compress': 'ghcr.io/vupham90/containers-pdf-compress:latest',
        'bw_backup': 'ghcr.io/vupham90/containers-bw-backup:latest',
        'ibgateway': 'ghcr.io/gnzsnz/ib-gateway:latest',
    },
}


def load_config():
  """Loads configuration data."""
  if not os.path.exists(CONFIG_FILE):
    return {}

  try:
    with open(CONFIG_FILE) as f:
      data = json.load(f)
  except (OSError, ValueError) as e:
    raise errors.ConfigParseError(CONFIG_FILE, str(e)) from e

  if not isinstance(data, dict):
    raise errors.ConfigParseError(CONFIG_FILE, 'expected a JSON object')
  return data


def _lookup(data, key_name):
  value = data
  for key in key_name.split('.'):
    if not isinstance(value, dict) or key not in value:
      return None
    value = value[key]
  return value


def get_setting(key_name, default_value=None):
  """Returns a setting by dotted name, e.g. 'images.bw_backup'.

  User settings take precedence over the built-in defaults.
  """
  value = _lookup(load_config(), key_name)
  if value is not None:
    return value

  value = _lookup(DEFAULT_SETTINGS, key_name)
  if value is not None:
    return value

  return default_value


def get_image(name):
  """Returns the image reference configured for a job."""
  return get_setting(f'images.{name}')


def _parse_profile(path, index, record):
  """Converts one YAML record into a BatchProfile."""
  if not isinstance(record, dict):
    raise errors.ConfigParseError(path, f'profile #{index + 1} is not a mapping')

  name = record.get('name')
  backup_dir = record.get('backup_dir')
  if not name or not isinstance(name, str):
    raise errors.ConfigParseError(path, f'profile #{index + 1} has no name')
  if not backup_dir or not isinstance(backup_dir, str):
    raise errors.ConfigParseError(path,
                                  f'profile \'{name}\' has no backup_dir')

  organizations = record.get('organizations') or []
  if not isinstance(organizations, list):
    raise errors.ConfigParseError(
        path, f'profile \'{name}\' organizations must be a list')

  return BatchProfile(
      name=name,
      target_dir=backup_dir,
      sub_targets=tuple(str(org) for org in organizations))


def load_profiles(path):
  """Loads batch profiles from a YAML file.

  The file has a top-level 'profiles' list of records with 'name',
  'backup_dir' and an optional 'organizations' list.

  Raises:
    ConfigParseError: If the file cannot be read or parsed, or defines no
        profiles.
  """
  try:
    with open(path) as f:
      data = yaml.safe_load(f)
  except OSError as e:
    raise errors.ConfigParseError(path, str(e)) from e
  except yaml.YAMLError as e:
    raise errors.ConfigParseError(path, str(e)) from e

  if not isinstance(data, dict):
    raise errors.ConfigParseError(path, 'no profiles found in config')

  records = data.get('profiles') or []
  if not isinstance(records, list):
    raise errors.ConfigParseError(path, '\'profiles\' must be a list')
  if not records:
    raise errors.ConfigParseError(path, 'no profiles found in config')

  return [
      _parse_profile(path, index, record)
      for index, record in enumerate(records)
  ]
