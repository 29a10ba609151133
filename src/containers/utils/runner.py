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
"""One-shot job execution."""

import signal
import subprocess
import threading
import time

from containers.utils import config
from containers.utils import docker_utils
from containers.utils import errors
from containers.utils import logs
from containers.utils import redaction
from containers.utils.invocation import InvocationSpec

# Seconds between checks of the cancellation event.
CANCEL_POLL_INTERVAL = 0.2

# Seconds a cancelled job gets to handle SIGTERM before it is killed.
TERMINATE_WAIT_TIME = 10

AUTHENTICATION_FAILURE = 'authentication'
ACTION_FAILURE = 'action'
CANCELLED = 'cancelled'
UNKNOWN_FAILURE = 'unknown'

_KIND_DESCRIPTIONS = {
    AUTHENTICATION_FAILURE: 'authentication failure',
    ACTION_FAILURE: 'action failure',
    CANCELLED: 'cancelled',
}


class JobResult:
  """Result of a one-shot job."""

  def __init__(self,
               command=None,
               exit_code=None,
               error=None,
               time_executed=None,
               cancelled=False):
    self.command = command or []
    self.exit_code = exit_code
    self.error = error
    self.time_executed = time_executed
    self.cancelled = cancelled

  @property
  def ok(self):
    return self.exit_code == 0 and self.error is None

  @property
  def failure_kind(self):
    """Returns None on success, otherwise the kind of failure."""
    if self.ok:
      return None
    if isinstance(self.error, errors.JobCancelledError):
      return CANCELLED
    if isinstance(self.error, errors.NonZeroExitError):
      return self.error.kind
    if isinstance(self.error, errors.LaunchError):
      return 'launch'
    return UNKNOWN_FAILURE

  def raise_for_status(self):
    """Raises the error carried by a failed result."""
    if self.error is not None:
      raise self.error


def classify_exit_code(exit_code):
  """Maps a job exit code onto a failure kind."""
  if exit_code == config.get_setting('exit_codes.auth_failure'):
    return AUTHENTICATION_FAILURE
  if exit_code == config.get_setting('exit_codes.action_failure'):
    return ACTION_FAILURE
  return UNKNOWN_FAILURE


def _end_process(process, terminate_wait_time):
  """Sends SIGTERM to |process|, then SIGKILL if it does not exit in time."""
  try:
    process.terminate()
    process.wait(timeout=terminate_wait_time)
  except subprocess.TimeoutExpired:
    logs.warning('Job did not exit after SIGTERM, killing it.')
    try:
      process.kill()
    except OSError:
      logs.info('Process already killed.')
  except OSError:
    logs.info('Process already exited.')


def _watch_cancellation(process, cancel_event, finished, result,
                        terminate_wait_time):
  """Ends |process| once |cancel_event| is set, unless it finished first."""
  while not finished.is_set():
    if cancel_event.wait(CANCEL_POLL_INTERVAL):
      if finished.is_set():
        return
      result.cancelled = True
      _end_process(process, terminate_wait_time)
      return


def wait_process(process,
                 cancel_event=None,
                 terminate_wait_time=TERMINATE_WAIT_TIME):
  """Waits until the process exits or the cancellation event is set.

  Args:
    process: A subprocess.Popen object.
    cancel_event: An optional threading.Event. Setting it terminates the
        process.
    terminate_wait_time: Maximum number of seconds to wait for the SIGTERM
        handler before sending SIGKILL.

  Returns:
    A JobResult holding the exit code and elapsed time.
  """
  result = JobResult()
  start_time = time.time()

  watcher = None
  finished = threading.Event()
  if cancel_event is not None:
    watcher = threading.Thread(
        target=_watch_cancellation,
        args=(process, cancel_event, finished, result, terminate_wait_time),
        daemon=True)
    watcher.start()

  try:
    process.wait()
  finally:
    finished.set()
    if watcher:
      watcher.join()

  result.exit_code = process.poll()
  result.time_executed = time.time() - start_time
  return result


def _launch_error(binary, error):
  if isinstance(error, FileNotFoundError):
    return errors.LaunchError(f'Executable not found: {binary}')
  if isinstance(error, PermissionError):
    return errors.LaunchError(f'Permission denied executing: {binary}')
  return errors.LaunchError(f'Failed to start {binary}: {error}')


def popen(command):
  """Starts |command| with stdin, stdout and stderr inherited."""
  return subprocess.Popen(command)


def run_job(spec: InvocationSpec,
            context=None,
            cancel_event=None,
            label='Job') -> JobResult:
  """Runs a one-shot job to completion.

  Exactly one audit line is written before launch and one after the job
  ends, whatever the outcome. Nothing is retried.

  Args:
    spec: The resolved invocation.
    context: Identity of the job for audit lines, e.g. profile and
        organization.
    cancel_event: An optional threading.Event that cancels the job.
    label: Human readable job name used in audit lines.

  Returns:
    A JobResult. Failures are carried in JobResult.error.
  """
  context = context or {}
  binary = docker_utils.docker_binary()
  argv = spec.argv()
  command = [binary] + argv

  logs.audit(
      f'{label} started:',
      **context,
      command=redaction.format_command(binary, argv, spec.env))

  start_time = time.time()
  if cancel_event is not None and cancel_event.is_set():
    result = JobResult(
        command=command,
        error=errors.JobCancelledError(),
        time_executed=0,
        cancelled=True)
    logs.audit(
        f'{label} failed:', **context, duration='0.00s', error=result.error)
    return result

  try:
    process = popen(command)
  except OSError as e:
    result = JobResult(
        command=command,
        error=_launch_error(binary, e),
        time_executed=time.time() - start_time)
  else:
    result = wait_process(process, cancel_event)
    result.command = command
    if result.cancelled:
      result.error = errors.NonZeroExitError(result.exit_code, CANCELLED,
                                             _KIND_DESCRIPTIONS[CANCELLED])
    elif result.exit_code != 0:
      kind = classify_exit_code(result.exit_code)
      result.error = errors.NonZeroExitError(result.exit_code, kind,
                                             _KIND_DESCRIPTIONS.get(kind))

  duration = f'{time.time() - start_time:.2f}s'
  if result.ok:
    logs.audit(f'{label} completed:', **context, duration=duration)
  else:
    logs.audit(
        f'{label} failed:', **context, duration=duration, error=result.error)

  return result


def cancel_on_signals(signals=(signal.SIGTERM,)):
  """Returns an event that is set when one of |signals| is received.

  Must be called from the main thread.
  """
  event = threading.Event()

  def _handler(signum, frame):  # pylint: disable=unused-argument
    logs.warning('Received signal, cancelling job.', signal=signum)
    event.set()

  for signum in signals:
    signal.signal(signum, _handler)

  return event
