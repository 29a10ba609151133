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
"""Credential resolution.

A credential is taken, in order, from an explicit value given by the caller,
from the platform secret store, or from an interactive no-echo prompt whose
answer is then saved to the store. Credential values are never logged.
"""

import abc
import sys
from typing import Callable

import click
import keyring
import keyring.errors

from containers.utils import environment
from containers.utils import errors
from containers.utils import logs

BW_BACKUP_SERVICE = 'containers-bw-backup'
IBGATEWAY_SERVICE = 'containers-ibgateway'

BW_CLIENT_ID = 'bitwarden_client_id'
BW_CLIENT_SECRET = 'bitwarden_client_secret'
BW_PASSWORD = 'bitwarden_password'
BW_BACKUP_PASSWORD = 'bitwarden_backup_password'
IBGATEWAY_USER = 'ibgateway_user'
IBGATEWAY_PASSWORD = 'ibgateway_password'


def account_name(logical_name: str, profile: str | None = None) -> str:
  """Returns the store account for |logical_name| under |profile|.

  Without a profile the bare logical name is used, so credentials saved
  before profiles existed keep working.
  """
  if not profile:
    return logical_name
  return f'{logical_name}_{profile}'


class SecretStore(abc.ABC):
  """A keyed secret store."""

  @abc.abstractmethod
  def get(self, account: str) -> str | None:
    """Returns the stored value, or None if there is none."""

  @abc.abstractmethod
  def set(self, account: str, value: str) -> None:
    """Stores |value|, replacing any previous value."""

  @abc.abstractmethod
  def delete(self, account: str) -> None:
    """Removes the stored value."""

  def exists(self, account: str) -> bool:
    return self.get(account) is not None


class KeyringStore(SecretStore):
  """Secret store backed by the platform keyring."""

  def __init__(self, service: str):
    self.service = service

  def get(self, account):
    try:
      return keyring.get_password(self.service, account)
    except keyring.errors.KeyringError as e:
      raise errors.CredentialResolutionError(
          f'Failed to read \'{account}\' from the credential store: '
          f'{type(e).__name__}') from e

  def set(self, account, value):
    try:
      keyring.set_password(self.service, account, value)
    except keyring.errors.KeyringError as e:
      raise errors.CredentialResolutionError(
          f'Failed to save \'{account}\' to the credential store: '
          f'{type(e).__name__}') from e

  def delete(self, account):
    try:
      keyring.delete_password(self.service, account)
    except keyring.errors.KeyringError as e:
      raise errors.CredentialResolutionError(
          f'Failed to delete \'{account}\' from the credential store: '
          f'{type(e).__name__}') from e


class MemoryStore(SecretStore):
  """In-memory secret store."""

  def __init__(self, values=None):
    self.values = dict(values or {})

  def get(self, account):
    return self.values.get(account)

  def set(self, account, value):
    self.values[account] = value

  def delete(self, account):
    self.values.pop(account, None)


def _click_prompt(text: str) -> str:
  return click.prompt(
      text, hide_input=True, default='', show_default=False, err=True)


# Values of CONTAINERS_UNATTENDED that leave prompting on.
_UNATTENDED_OFF_VALUES = ('', '0', 'false', 'no', 'off', 'none')


def unattended() -> bool:
  """Returns whether CONTAINERS_UNATTENDED asks for a run without prompts."""
  value = environment.get_value('CONTAINERS_UNATTENDED', '')
  return str(value).strip().lower() not in _UNATTENDED_OFF_VALUES


def prompting_enabled() -> bool:
  """Returns whether a user can be asked for missing credentials."""
  if unattended():
    return False

  try:
    return sys.stdin.isatty()
  except (AttributeError, ValueError):
    return False


class CredentialProvider:
  """Resolves credentials from explicit values, the store or the user."""

  def __init__(self,
               store: SecretStore,
               prompt: Callable[[str], str] | None = None,
               interactive: bool | None = None):
    self.store = store
    self.prompt = prompt or _click_prompt
    self.interactive = interactive

  def _is_interactive(self):
    if self.interactive is not None:
      return self.interactive
    return prompting_enabled()

  def _ask(self, account: str, text: str) -> str:
    """Prompts for |account| and saves the answer."""
    if not self._is_interactive():
      raise errors.CredentialResolutionError(
          f'Credential \'{account}\' is not stored and prompting is '
          'disabled.')

    try:
      value = self.prompt(text)
    except (click.exceptions.Abort, EOFError, OSError) as e:
      raise errors.CredentialResolutionError(
          f'Failed to read credential \'{account}\'.') from e

    value = (value or '').strip()
    if not value:
      raise errors.CredentialResolutionError(
          f'Empty value entered for credential \'{account}\'.')

    self.store.set(account, value)
    return value

  def resolve(self,
              explicit_value: str | None,
              logical_name: str,
              profile: str | None = None,
              reset: bool = False) -> str:
    """Returns the credential |logical_name| for |profile|.

    Raises:
      CredentialResolutionError: If the store fails or no value can be
          obtained from the user.
    """
    if explicit_value:
      return explicit_value

    account = account_name(logical_name, profile)

    if reset:
      if not self._is_interactive():
        raise errors.CredentialResolutionError(
            f'Cannot reset credential \'{account}\' because prompting is '
            'disabled.')

      try:
        self.store.delete(account)
      except errors.CredentialResolutionError:
        logs.info('Ignoring failure to delete credential.', account=account)

      value = self._ask(account, f'Enter new password for \'{account}\'')
      click.echo(f'Password for \'{account}\' updated.', err=True)
      return value

    value = self.store.get(account)
    if value:
      return value

    click.echo(f'Password for \'{account}\' not found in the credential store.',
               err=True)
    value = self._ask(account, f'Enter password for \'{account}\'')
    click.echo(f'Password for \'{account}\' saved.', err=True)
    return value


def keyring_backend_name() -> str:
  """Returns the name of the active keyring backend."""
  backend = keyring.get_keyring()
  return f'{type(backend).__module__}.{type(backend).__name__}'
