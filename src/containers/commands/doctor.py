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
"""Doctor command."""

import sys

import click
import keyring.errors

from containers.utils import credentials
from containers.utils import docker_utils


def _check_docker():
  click.echo('Checking Docker setup...')
  if not docker_utils.check_docker_setup():
    return False
  click.secho('Docker setup is correct.', fg='green')
  return True


def _check_credential_store():
  click.echo('Checking credential store...')
  try:
    backend = credentials.keyring_backend_name()
  except keyring.errors.KeyringError as e:
    click.secho(f'Error: Credential store is unavailable: {e}', fg='red')
    return False

  if backend.startswith('keyring.backends.fail.'):
    click.secho(
        'Error: No credential store backend is available. Pass credentials '
        'as options instead.',
        fg='red')
    return False

  click.secho(f'Credential store backend: {backend}', fg='green')
  return True


@click.command(name='doctor', help='Checks that jobs can be run.')
def cli():
  """Checks the docker daemon and the credential store."""
  results = [_check_docker(), _check_credential_store()]
  if not all(results):
    click.secho('Some checks failed. Please resolve the issues above.', fg='red')
    sys.exit(1)

  click.secho('All checks passed.', fg='green')
