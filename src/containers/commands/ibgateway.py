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
"""Starts the Interactive Brokers gateway in the background."""

import sys

import click

from containers.utils import config
from containers.utils import credentials
from containers.utils import daemon
from containers.utils import environment
from containers.utils import errors

IMAGE_SETTING = 'ibgateway'
DEFAULT_NAME = 'ibgateway'
TRADING_MODES = ('paper', 'live')

# (host port, job port)
PORT_MAP = ((4001, 4003), (4002, 4004))


def build_env(user: str, password: str,
              mode: str) -> environment.TaggedEnvVarMap:
  return environment.build_env([
      environment.sensitive('TWS_USERID', user),
      environment.sensitive('TWS_PASSWORD', password),
      environment.structural('TRADING_MODE', mode),
  ])


@click.command(
    name='ibgateway',
    help='Start IB Gateway container for Interactive Brokers')
@click.option(
    '--user',
    envvar='TWS_USERID',
    help='Interactive Brokers username. Read from the credential store if '
    'not given.')
@click.option(
    '--password',
    envvar='TWS_PASSWORD',
    help='Interactive Brokers password. Read from the credential store if '
    'not given.')
@click.option(
    '--mode',
    envvar='TRADING_MODE',
    default='paper',
    show_default=True,
    type=click.Choice(TRADING_MODES),
    help='Trading mode.')
@click.option('--image', default=None, help='Docker image to use.')
@click.option(
    '--name', default=DEFAULT_NAME, show_default=True, help='Container name.')
@click.option(
    '--reset',
    '-r',
    is_flag=True,
    default=False,
    help='Re-enter the stored username and password.')
def cli(user: str | None, password: str | None, mode: str, image: str | None,
        name: str, reset: bool) -> None:
  """Replaces any gateway container called NAME with a fresh one."""
  provider = credentials.CredentialProvider(
      credentials.KeyringStore(credentials.IBGATEWAY_SERVICE))

  try:
    user = provider.resolve(user, credentials.IBGATEWAY_USER, reset=reset)
    password = provider.resolve(
        password, credentials.IBGATEWAY_PASSWORD, reset=reset)

    click.echo(f'Starting IB Gateway container \'{name}\' in {mode} mode...')
    daemon.ensure_running(name, image or config.get_image(IMAGE_SETTING),
                          PORT_MAP, build_env(user, password, mode))
  except errors.Error as e:
    click.secho(f'Error: {e}', fg='red', err=True)
    sys.exit(errors.exit_code_for(e))

  click.secho(f'IB Gateway container \'{name}\' started.', fg='green')
