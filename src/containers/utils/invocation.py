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
"""Builds docker invocations for isolated one-shot jobs."""

from dataclasses import dataclass
from dataclasses import field
import os
import types
from typing import Iterable
from typing import Mapping
from typing import Union

from containers.utils import errors
from containers.utils.environment import TaggedEnvVar

# The path the working directory is mounted at inside every job.
WORKSPACE_PATH = '/workspace'

# Token that precedes every environment entry in the docker argv.
ENV_FLAG = '-e'


@dataclass(frozen=True)
class PersistentMount:
  """A host directory bound into the job's filesystem."""
  host_path: str
  job_path: str = WORKSPACE_PATH
  read_only: bool = False

  def to_args(self) -> list[str]:
    binding = f'{self.host_path}:{self.job_path}'
    if self.read_only:
      binding += ':ro'
    return ['-v', binding]


@dataclass(frozen=True)
class VolatileMount:
  """A memory-backed scratch area that disappears with the job."""
  job_path: str
  options: str = ''

  def to_args(self) -> list[str]:
    if self.options:
      return ['--tmpfs', f'{self.job_path}:{self.options}']
    return ['--tmpfs', self.job_path]


MountSpec = Union[PersistentMount, VolatileMount]


@dataclass(frozen=True)
class InvocationSpec:
  """A fully resolved job, ready to be handed to a runner."""
  executable_ref: str
  work_dir: PersistentMount
  extra_mounts: tuple[MountSpec, ...] = ()
  env: Mapping[str, TaggedEnvVar] = field(
      default_factory=lambda: types.MappingProxyType({}))
  trailing_args: tuple[str, ...] = ()
  auto_remove: bool = True

  @property
  def volatile_mounts(self) -> list[VolatileMount]:
    return [m for m in self.extra_mounts if isinstance(m, VolatileMount)]

  @property
  def persistent_mounts(self) -> list[PersistentMount]:
    return [m for m in self.extra_mounts if isinstance(m, PersistentMount)]

  def argv(self) -> list[str]:
    """Returns the docker arguments (without the docker binary itself).

    The order is fixed: auto-remove, volatile mounts, environment, work dir,
    other persistent mounts, image, trailing arguments.
    """
    args = ['run']
    if self.auto_remove:
      args.append('--rm')

    for mount in self.volatile_mounts:
      args.extend(mount.to_args())

    for env_var in self.env.values():
      args.extend([ENV_FLAG, f'{env_var.name}={env_var.value}'])

    args.extend(self.work_dir.to_args())
    args.extend(['-w', self.work_dir.job_path])

    for mount in self.persistent_mounts:
      args.extend(mount.to_args())

    args.append(self.executable_ref)
    args.extend(self.trailing_args)
    return args


def resolve_directory(path: str) -> str:
  """Returns the absolute form of |path|, which must be an existing directory.

  Raises:
    PathResolutionError: If the path cannot be made absolute.
    MissingDirectoryError: If the resolved path is not a directory.
  """
  if not path:
    raise errors.PathResolutionError(path, 'empty path')

  try:
    absolute_path = os.path.abspath(os.path.expanduser(path))
  except (OSError, ValueError) as e:
    raise errors.PathResolutionError(path, str(e)) from e

  if not os.path.isdir(absolute_path):
    raise errors.MissingDirectoryError(absolute_path)

  return absolute_path


def _resolve_mount(mount: PersistentMount) -> PersistentMount:
  return PersistentMount(
      host_path=resolve_directory(mount.host_path),
      job_path=mount.job_path,
      read_only=mount.read_only)


def build(executable_ref: str,
          work_dir: PersistentMount | str,
          extra_mounts: Iterable[MountSpec] = (),
          env: Mapping[str, TaggedEnvVar] | None = None,
          trailing_args: Iterable[str] = (),
          auto_remove: bool = True) -> InvocationSpec:
  """Assembles an InvocationSpec.

  Args:
    executable_ref: The image to run.
    work_dir: The directory mounted as the job's working directory. A plain
        path is mounted at WORKSPACE_PATH.
    extra_mounts: Additional volatile or persistent mounts.
    env: The tagged environment passed to the job.
    trailing_args: Arguments appended after the image.
    auto_remove: Whether the job is removed once it exits.

  Returns:
    The InvocationSpec. Nothing is executed.

  Raises:
    PathResolutionError: If a host path cannot be made absolute.
    MissingDirectoryError: If a host path does not exist.
  """
  if isinstance(work_dir, str):
    work_dir = PersistentMount(host_path=work_dir)

  resolved_mounts = []
  for mount in extra_mounts:
    if isinstance(mount, PersistentMount):
      mount = _resolve_mount(mount)
    resolved_mounts.append(mount)

  return InvocationSpec(
      executable_ref=executable_ref,
      work_dir=_resolve_mount(work_dir),
      extra_mounts=tuple(resolved_mounts),
      env=types.MappingProxyType(dict(env or {})),
      trailing_args=tuple(trailing_args),
      auto_remove=auto_remove)
