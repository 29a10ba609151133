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
"""Docker utility functions."""

import os

import click
import docker

from containers.utils import environment
from containers.utils import errors

DEFAULT_DOCKER_BINARY = 'docker'


def docker_binary() -> str:
  """Returns the docker CLI used to launch jobs."""
  return environment.get_value('CONTAINERS_DOCKER', DEFAULT_DOCKER_BINARY)


def get_client() -> docker.client.DockerClient:
  """Returns a connected docker client.

  Raises:
    DaemonStateError: If the docker daemon cannot be reached.
  """
  try:
    client = docker.from_env()
    client.ping()
    return client
  except docker.errors.DockerException as e:
    raise errors.DaemonStateError(
        f'Failed to connect to the docker daemon: {e}') from e


def check_docker_setup() -> docker.client.DockerClient | None:
  """Checks if Docker is installed, running, and has correct permissions.

  Returns:
    A docker.client object if setup is correct, None otherwise.
  """
  try:
    client = docker.from_env()
    client.ping()
    return client
  except docker.errors.DockerException as e:
    if 'Permission denied' in str(e):
      click.secho(
          'Error: Permission denied while connecting to the Docker daemon.',
          fg='red')
      click.echo('Please add your user to the "docker" group by running:')
      click.secho(
          f'  sudo usermod -aG docker ${os.environ.get("USER")}', fg='yellow')
      click.echo('Then, log out and log back in for the change to take effect.')
    else:
      click.secho(
          'Error: Docker is not running or is not installed. Please start '
          f'Docker and try again. Exception: {e}',
          fg='red')
    return None


def find_containers(client: docker.client.DockerClient, name: str) -> list:
  """Returns every container (running or not) named exactly |name|.

  Raises:
    DaemonStateError: If the container table cannot be listed.
  """
  try:
    candidates = client.containers.list(all=True, filters={'name': name})
  except docker.errors.DockerException as e:
    raise errors.DaemonStateError(f'Failed to list containers: {e}') from e

  # The name filter matches substrings.
  return [c for c in candidates if c.name == name]


def remove_container(container) -> None:
  """Force-removes |container|. A container that is already gone is fine.

  Raises:
    DaemonStateError: If the container exists but cannot be removed.
  """
  try:
    container.remove(force=True)
  except docker.errors.NotFound:
    return
  except docker.errors.DockerException as e:
    raise errors.DaemonStateError(
        f'Failed to remove container {container.name}: {e}') from e
