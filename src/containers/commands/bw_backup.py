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
"""Backs up Bitwarden vaults to a local directory."""

import os
import sys

import click

from containers.utils import batch
from containers.utils import config
from containers.utils import credentials
from containers.utils import errors
from containers.utils import runner
from containers.utils import vault_backup


def _run_single(provider, client_id, client_secret, password, backup_dir,
                reset, profile, organization_id, backup_password,
                persist_session, cancel_event):
  """Backs up one vault. Raises on failure."""
  vault_credentials = vault_backup.resolve_credentials(
      provider,
      profile=profile,
      reset=reset,
      client_id=client_id,
      client_secret=client_secret,
      password=password)

  spec = vault_backup.build_job(
      backup_dir,
      vault_credentials,
      profile=profile,
      organization_id=organization_id,
      backup_password=backup_password,
      persist_session=persist_session)

  click.echo('Starting Bitwarden backup...')
  result = vault_backup.run_job(spec, profile, organization_id, cancel_event)
  result.raise_for_status()
  click.secho(
      f'Backup written to {spec.work_dir.host_path}', fg='green')


def _run_batch(provider, profiles_path, reset, backup_password,
               persist_session, cancel_event):
  """Backs up every vault listed in |profiles_path|. Raises on failure."""
  profiles = config.load_profiles(os.path.expanduser(profiles_path))
  backup = vault_backup.BatchBackup(
      provider,
      reset=reset,
      persist_session=persist_session,
      cancel_event=cancel_event)

  outcome = batch.run_batch(
      profiles,
      backup.job,
      shared_secrets=backup_password,
      prepare=backup.prepare,
      cancel_event=cancel_event)
  outcome.raise_for_failures()


@click.command(
    name='bw-backup', help='Backup Bitwarden vault to local directory')
@click.option('--client-id', '-c', help='Bitwarden API client ID.')
@click.option('--client-secret', '-s', help='Bitwarden API client secret.')
@click.option('--password', '-p', help='Bitwarden master password.')
@click.option(
    '--backup-dir',
    '-d',
    default='./backups',
    show_default=True,
    help='Backup destination directory. Must exist.')
@click.option(
    '--reset',
    '-r',
    is_flag=True,
    default=False,
    help='Reset all credentials and re-enter them.')
@click.option(
    '--profile',
    default=None,
    help='Credential profile, e.g. personal or work.')
@click.option(
    '--organization-id',
    default=None,
    help='Back up this organization vault instead of the personal one.')
@click.option(
    '--profiles',
    'profiles_path',
    default=None,
    help='YAML file with profiles to back up in batch mode.')
@click.option(
    '--encrypt',
    is_flag=True,
    default=False,
    help='Encrypt the export with the stored backup password.')
@click.option(
    '--backup-password',
    default=None,
    help='Encrypt the export with this password.')
@click.option(
    '--persist-session',
    is_flag=True,
    default=False,
    help='Keep the vault session between runs in a private per-profile '
    'directory.')
def cli(client_id: str | None, client_secret: str | None,
        password: str | None, backup_dir: str, reset: bool,
        profile: str | None, organization_id: str | None,
        profiles_path: str | None, encrypt: bool,
        backup_password: str | None, persist_session: bool) -> None:
  """Backs up a Bitwarden vault, or every vault listed in --profiles."""
  provider = credentials.CredentialProvider(
      credentials.KeyringStore(credentials.BW_BACKUP_SERVICE))
  cancel_event = runner.cancel_on_signals()

  try:
    # Resolved once, shared by every job of a batch.
    backup_password = vault_backup.resolve_backup_password(
        provider, backup_password, encrypt, reset)

    if profiles_path:
      _run_batch(provider, profiles_path, reset, backup_password,
                 persist_session, cancel_event)
    else:
      _run_single(provider, client_id, client_secret, password, backup_dir,
                  reset, profile, organization_id, backup_password,
                  persist_session, cancel_event)
  except errors.Error as e:
    click.secho(f'Error: {e}', fg='red', err=True)
    sys.exit(errors.exit_code_for(e))
