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
"""Sequential batch execution over profiles.

Each profile runs one primary job and then one job per sub-target. A failed
job is recorded and the batch moves on, so one bad profile never stops the
others.
"""

from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Callable
from typing import Sequence

import click

from containers.utils import errors
from containers.utils import logs


@dataclass(frozen=True)
class BatchProfile:
  """One unit of batch work."""
  name: str
  target_dir: str
  sub_targets: tuple[str, ...] = ()


@dataclass
class BatchFailure:
  """A job of the batch that did not succeed."""
  profile: str
  sub_target: str | None
  message: str
  prepare_failed: bool = False

  def describe(self,
               primary_label='personal vault',
               sub_target_label='organization'):
    if self.prepare_failed:
      return f'Profile \'{self.profile}\': {self.message}'
    if self.sub_target is None:
      return f'Profile \'{self.profile}\' {primary_label}: {self.message}'
    return (f'Profile \'{self.profile}\' {sub_target_label} '
            f'\'{self.sub_target}\': {self.message}')


@dataclass
class BatchOutcome:
  """Tally of a batch run."""
  success_count: int = 0
  failures: list[BatchFailure] = field(default_factory=list)

  @property
  def failure_count(self):
    return len(self.failures)

  def record_success(self):
    self.success_count += 1

  def record_failure(self, failure: BatchFailure):
    self.failures.append(failure)

  def raise_for_failures(self):
    """Raises BatchError if any job failed."""
    if self.failures:
      raise errors.BatchError(len(self.failures))


# job(profile, sub_target, prepared, shared_secrets) -> JobResult
JobFunction = Callable[[BatchProfile, str | None, Any, Any], Any]


def _run_one(job, profile, sub_target, prepared, shared_secrets):
  """Runs a single job and returns an error message, or None on success."""
  try:
    result = job(profile, sub_target, prepared, shared_secrets)
  except errors.Error as e:
    return str(e)

  if result.ok:
    return None
  return str(result.error)


def run_batch(profiles: Sequence[BatchProfile],
              job: JobFunction,
              shared_secrets: Any = None,
              prepare: Callable[[BatchProfile], Any] | None = None,
              primary_label: str = 'personal vault',
              sub_target_label: str = 'organization',
              cancel_event=None) -> BatchOutcome:
  """Runs |job| for every profile and sub-target, strictly in order.

  Args:
    profiles: The profiles to process.
    job: Called once per profile with sub_target None, then once per
        sub-target. Returns a JobResult or raises errors.Error.
    shared_secrets: Secrets resolved once by the caller and handed to every
        job.
    prepare: Optional per-profile step, e.g. credential resolution. Its
        return value is passed to the profile's jobs. If it raises
        errors.Error, the profile's jobs are skipped.
    primary_label: Name of the primary job in progress output.
    sub_target_label: Name of a sub-target in progress output.
    cancel_event: An optional threading.Event. Once it is set, profiles that
        have not started are recorded as failed without running.

  Returns:
    The BatchOutcome. Failures are never raised from here.
  """
  outcome = BatchOutcome()
  total = len(profiles)
  click.echo(f'Starting batch for {total} profile(s)...\n')

  for i, profile in enumerate(profiles, 1):
    click.echo(f'[{i}/{total}] Processing profile: {profile.name}')

    if cancel_event is not None and cancel_event.is_set():
      outcome.record_failure(
          BatchFailure(profile.name, None, 'Batch cancelled',
                       prepare_failed=True))
      click.echo('  ✗ Skipping profile: batch cancelled\n')
      continue

    prepared = None
    if prepare:
      try:
        prepared = prepare(profile)
      except errors.Error as e:
        outcome.record_failure(
            BatchFailure(profile.name, None, str(e), prepare_failed=True))
        click.echo(f'  ✗ Skipping profile: {e}\n')
        logs.warning('Batch profile skipped.', profile=profile.name)
        continue

    message = _run_one(job, profile, None, prepared, shared_secrets)
    if message is None:
      outcome.record_success()
      click.echo(f'  ✓ {primary_label.capitalize()} completed')
    else:
      outcome.record_failure(BatchFailure(profile.name, None, message))
      click.echo(f'  ✗ {primary_label.capitalize()} failed: {message}')

    for sub_target in profile.sub_targets:
      click.echo(f'  → Processing {sub_target_label}: {sub_target}')
      message = _run_one(job, profile, sub_target, prepared, shared_secrets)
      if message is None:
        outcome.record_success()
        click.echo(f'    ✓ {sub_target_label.capitalize()} completed')
      else:
        outcome.record_failure(BatchFailure(profile.name, sub_target, message))
        click.echo(f'    ✗ {sub_target_label.capitalize()} failed: {message}')

    click.echo()

  click.echo(f'Batch completed: {outcome.success_count} successful, '
             f'{outcome.failure_count} failed')
  if outcome.failures:
    click.echo('\nErrors:')
    for failure in outcome.failures:
      click.echo('  - ' + failure.describe(primary_label, sub_target_label))

  return outcome
