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
"""Errors raised while preparing, launching and supervising jobs."""


class Error(Exception):
  """Base exception class for errors."""


class PathResolutionError(Error):
  """A host path could not be turned into an absolute path."""

  def __init__(self, path, reason=None):
    self.path = path
    message = f'Failed to resolve path: {path}'
    if reason:
      message += f' ({reason})'
    super().__init__(message)


class MissingDirectoryError(Error):
  """A host directory that must be mounted does not exist."""

  def __init__(self, path):
    self.path = path
    super().__init__(f'Directory does not exist: {path}')


class CredentialResolutionError(Error):
  """A credential could not be read from the store or from the user."""


class LaunchError(Error):
  """The executable could not be started at all."""


class NonZeroExitError(Error):
  """The job ran but exited with a non-zero status."""

  def __init__(self, exit_code, kind='unknown', description=None):
    self.exit_code = exit_code
    self.kind = kind
    message = f'Job exited with code {exit_code}'
    if description:
      message += f' ({description})'
    super().__init__(message)


class JobCancelledError(Error):
  """Cancellation was requested before the job was launched."""

  def __init__(self):
    super().__init__('Job cancelled before launch')


class DaemonStateError(Error):
  """The set of background jobs could not be listed or cleaned up."""


class ConfigParseError(Error):
  """A configuration file could not be read or has an invalid shape."""

  def __init__(self, path, reason=None):
    self.path = path
    message = f'Failed to parse config file: {path}'
    if reason:
      message += f': {reason}'
    super().__init__(message)


class BatchError(Error):
  """At least one job of a batch failed."""

  def __init__(self, failure_count):
    self.failure_count = failure_count
    super().__init__(f'Batch completed with {failure_count} error(s)')


def exit_code_for(error):
  """Returns the process exit code a command should end with for |error|.

  A job's own exit code is passed through so that callers can tell an
  authentication failure from an action failure.
  """
  if isinstance(error, NonZeroExitError) and (error.exit_code or 0) > 0:
    return error.exit_code
  return 1
