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
"""Tests for credential resolution.

  For running all the tests, use (from the root of the project):
  python -m unittest discover -s src/containers/tests -p credentials_test.py -v
"""

import os
import unittest
from unittest import mock

import click
import keyring.errors

from containers.utils import credentials
from containers.utils import errors


class AccountNameTest(unittest.TestCase):
  """Tests for account_name."""

  def test_without_profile(self):
    self.assertEqual('bitwarden_password',
                     credentials.account_name('bitwarden_password'))
    self.assertEqual('bitwarden_password',
                     credentials.account_name('bitwarden_password', ''))

  def test_with_profile(self):
    self.assertEqual('bitwarden_password_work',
                     credentials.account_name('bitwarden_password', 'work'))


class CredentialProviderTest(unittest.TestCase):
  """Tests for CredentialProvider."""

  def setUp(self):
    super().setUp()
    self.store = mock.create_autospec(credentials.SecretStore, instance=True)
    self.store.get.return_value = None
    self.prompt = mock.Mock(return_value='entered')
    self.provider = credentials.CredentialProvider(
        self.store, prompt=self.prompt, interactive=True)

  def test_explicit_value_short_circuits(self):
    """Tests that an explicit value never touches the store."""
    value = self.provider.resolve(
        'explicit', 'bitwarden_password', 'work', reset=True)

    self.assertEqual('explicit', value)
    self.assertEqual([], self.store.mock_calls)
    self.prompt.assert_not_called()

  def test_stored_value(self):
    self.store.get.return_value = 'stored'

    value = self.provider.resolve(None, 'bitwarden_password', 'work')

    self.assertEqual('stored', value)
    self.store.get.assert_called_once_with('bitwarden_password_work')
    self.prompt.assert_not_called()
    self.store.set.assert_not_called()

  def test_missing_value_prompts_and_stores(self):
    value = self.provider.resolve(None, 'bitwarden_client_id')

    self.assertEqual('entered', value)
    self.store.set.assert_called_once_with('bitwarden_client_id', 'entered')
    self.assertIn('bitwarden_client_id', self.prompt.call_args[0][0])

  def test_reset_deletes_and_prompts(self):
    self.store.get.return_value = 'stored'

    value = self.provider.resolve(None, 'bitwarden_password', 'work', True)

    self.assertEqual('entered', value)
    self.store.delete.assert_called_once_with('bitwarden_password_work')
    self.store.set.assert_called_once_with('bitwarden_password_work',
                                           'entered')

  def test_reset_ignores_delete_failure(self):
    self.store.delete.side_effect = errors.CredentialResolutionError('nope')

    value = self.provider.resolve(None, 'bitwarden_password', reset=True)

    self.assertEqual('entered', value)

  def test_prompt_aborted(self):
    self.prompt.side_effect = click.exceptions.Abort()

    with self.assertRaises(errors.CredentialResolutionError):
      self.provider.resolve(None, 'bitwarden_password')
    self.store.set.assert_not_called()

  def test_prompt_eof(self):
    self.prompt.side_effect = EOFError()

    with self.assertRaises(errors.CredentialResolutionError):
      self.provider.resolve(None, 'bitwarden_password')

  def test_empty_entry_rejected(self):
    self.prompt.return_value = '   '

    with self.assertRaises(errors.CredentialResolutionError):
      self.provider.resolve(None, 'bitwarden_password')
    self.store.set.assert_not_called()

  def test_unattended_fails_fast(self):
    """Tests that a missing credential never blocks when prompting is off."""
    provider = credentials.CredentialProvider(
        self.store, prompt=self.prompt, interactive=False)

    with self.assertRaises(errors.CredentialResolutionError):
      provider.resolve(None, 'bitwarden_password')
    self.prompt.assert_not_called()

  def test_unattended_reset_keeps_stored_value(self):
    """Tests that a reset without prompting leaves the stored value alone."""
    provider = credentials.CredentialProvider(
        self.store, prompt=self.prompt, interactive=False)

    with self.assertRaises(errors.CredentialResolutionError):
      provider.resolve(None, 'bitwarden_password', 'work', reset=True)
    self.store.delete.assert_not_called()
    self.store.set.assert_not_called()
    self.prompt.assert_not_called()

  def test_store_failure(self):
    self.store.get.side_effect = errors.CredentialResolutionError('locked')

    with self.assertRaises(errors.CredentialResolutionError):
      self.provider.resolve(None, 'bitwarden_password')

  def test_secret_not_in_error_message(self):
    self.prompt.return_value = 'hunter2'
    self.store.set.side_effect = errors.CredentialResolutionError(
        'Failed to save')

    with self.assertRaises(errors.CredentialResolutionError) as context:
      self.provider.resolve(None, 'bitwarden_password')
    self.assertNotIn('hunter2', str(context.exception))


class PromptingEnabledTest(unittest.TestCase):
  """Tests for prompting_enabled."""

  def test_unattended_variable(self):
    with mock.patch.dict(os.environ, {'CONTAINERS_UNATTENDED': 'True'}):
      self.assertFalse(credentials.prompting_enabled())

  def test_unattended_values(self):
    """Tests which CONTAINERS_UNATTENDED values turn prompting off."""
    cases = [
        ('1', True),
        ('True', True),
        ('yes', True),
        ('false', False),
        ('False', False),
        ('0', False),
        ('off', False),
        ('', False),
    ]

    for value, expected in cases:
      with self.subTest(value), \
          mock.patch.dict(os.environ, {'CONTAINERS_UNATTENDED': value}):
        self.assertEqual(expected, credentials.unattended())

  def test_unattended_false_allows_prompt(self):
    with mock.patch.dict(os.environ, {'CONTAINERS_UNATTENDED': 'false'}), \
        mock.patch('sys.stdin') as stdin:
      stdin.isatty.return_value = True
      self.assertTrue(credentials.prompting_enabled())

  def test_not_a_tty(self):
    with mock.patch.dict(os.environ, {}, clear=True), \
        mock.patch('sys.stdin') as stdin:
      stdin.isatty.return_value = False
      self.assertFalse(credentials.prompting_enabled())

  def test_tty(self):
    with mock.patch.dict(os.environ, {}, clear=True), \
        mock.patch('sys.stdin') as stdin:
      stdin.isatty.return_value = True
      self.assertTrue(credentials.prompting_enabled())


class KeyringStoreTest(unittest.TestCase):
  """Tests for KeyringStore."""

  def setUp(self):
    super().setUp()
    self.mock_keyring = self.enterContext(
        mock.patch.object(credentials, 'keyring'))
    self.mock_keyring.errors = keyring.errors
    self.store = credentials.KeyringStore('containers-bw-backup')

  def test_get(self):
    self.mock_keyring.get_password.return_value = 'secret'

    self.assertEqual('secret', self.store.get('bitwarden_password'))
    self.mock_keyring.get_password.assert_called_once_with(
        'containers-bw-backup', 'bitwarden_password')

  def test_exists(self):
    self.mock_keyring.get_password.return_value = None

    self.assertFalse(self.store.exists('bitwarden_password'))

  def test_set(self):
    self.store.set('bitwarden_password', 'secret')

    self.mock_keyring.set_password.assert_called_once_with(
        'containers-bw-backup', 'bitwarden_password', 'secret')

  def test_backend_failure(self):
    self.mock_keyring.get_password.side_effect = keyring.errors.NoKeyringError()

    with self.assertRaises(errors.CredentialResolutionError):
      self.store.get('bitwarden_password')

  def test_delete_failure(self):
    self.mock_keyring.delete_password.side_effect = (
        keyring.errors.PasswordDeleteError('missing'))

    with self.assertRaises(errors.CredentialResolutionError):
      self.store.delete('bitwarden_password')


class MemoryStoreTest(unittest.TestCase):
  """Tests for MemoryStore."""

  def test_round_trip(self):
    store = credentials.MemoryStore()
    store.set('a', 'b')

    self.assertTrue(store.exists('a'))
    store.delete('a')
    self.assertIsNone(store.get('a'))


if __name__ == '__main__':
  unittest.main()
