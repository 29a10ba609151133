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
"""Idempotent (re)start of named background jobs."""

import subprocess
import time
from typing import Mapping
from typing import Sequence

import click

from containers.utils import docker_utils
from containers.utils import errors
from containers.utils import logs
from containers.utils import redaction
from containers.utils.environment import TaggedEnvVar
from containers.utils.invocation import ENV_FLAG

DEFAULT_RESTART_POLICY = 'unless-stopped'


def daemon_argv(identity: str,
                executable_ref: str,
                port_map: Sequence[tuple[int, int]],
                env: Mapping[str, TaggedEnvVar],
                restart_policy: str = DEFAULT_RESTART_POLICY) -> list[str]:
  """Returns the docker arguments that start a detached, named job."""
  args = ['run', '-d', '--name', identity, '--restart', restart_policy]
  for host_port, job_port in port_map:
    args.extend(['-p', f'{host_port}:{job_port}'])

  for env_var in env.values():
    args.extend([ENV_FLAG, f'{env_var.name}={env_var.value}'])

  args.append(executable_ref)
  return args


def remove_existing(client, identity: str) -> int:
  """Removes every job named |identity|. Returns the number removed.

  Raises:
    DaemonStateError: If the jobs cannot be listed or one cannot be removed.
  """
  existing = docker_utils.find_containers(client, identity)
  for container in existing:
    click.echo(f'Removing existing container: {identity}')
    docker_utils.remove_container(container)

  return len(existing)


def ensure_running(identity: str,
                   executable_ref: str,
                   port_map: Sequence[tuple[int, int]],
                   env: Mapping[str, TaggedEnvVar],
                   restart_policy: str = DEFAULT_RESTART_POLICY,
                   client=None) -> None:
  """Replaces any job named |identity| with a fresh detached one.

  At most one job with the name exists afterwards. If cleanup fails nothing
  is launched.

  Raises:
    DaemonStateError: If existing jobs cannot be listed or removed.
    LaunchError: If the docker CLI cannot be started.
    NonZeroExitError: If the docker CLI rejects the launch.
  """
  if client is None:
    client = docker_utils.get_client()

  remove_existing(client, identity)

  binary = docker_utils.docker_binary()
  argv = daemon_argv(identity, executable_ref, port_map, env, restart_policy)
  command = [binary] + argv

  logs.audit(
      'Daemon launch started:',
      name=identity,
      command=redaction.format_command(binary, argv, env))

  start_time = time.time()
  try:
    exit_code = subprocess.call(command)
  except OSError as e:
    logs.audit('Daemon launch failed:', name=identity, error=type(e).__name__)
    raise errors.LaunchError(f'Failed to start {binary}: {e}') from e

  duration = f'{time.time() - start_time:.2f}s'
  if exit_code != 0:
    error = errors.NonZeroExitError(exit_code)
    logs.audit(
        'Daemon launch failed:', name=identity, duration=duration, error=error)
    raise error

  logs.audit('Daemon launch completed:', name=identity, duration=duration)
