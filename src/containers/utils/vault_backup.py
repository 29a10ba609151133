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
"""Bitwarden vault backup jobs, shared by single and batch mode."""

from dataclasses import dataclass
from dataclasses import field
import os

from containers.utils import config
from containers.utils import credentials
from containers.utils import environment
from containers.utils import errors
from containers.utils import invocation
from containers.utils import runner
from containers.utils.batch import BatchProfile
from containers.utils.invocation import PersistentMount
from containers.utils.invocation import VolatileMount

IMAGE_SETTING = 'bw_backup'

# Everything the vault CLI writes outside the backup directory stays in
# memory and vanishes with the job.
VOLATILE_MOUNTS = (
    VolatileMount('/tmp', 'rw,noexec,nosuid,size=100m'),
    VolatileMount('/root/.config', 'rw,noexec,nosuid,size=50m'),
    VolatileMount('/root/.cache', 'rw,noexec,nosuid,size=50m'),
    VolatileMount('/root/.local', 'rw,noexec,nosuid,size=50m'),
)

SESSION_ROOT = os.path.expanduser('~/.containers/sessions')
SESSION_JOB_PATH = '/root/.config/Bitwarden CLI'
DEFAULT_SESSION_NAME = 'default'

AUDIT_LABEL = 'Bitwarden backup'


@dataclass(frozen=True)
class VaultCredentials:
  """Login material for one vault account."""
  client_id: str = field(repr=False)
  client_secret: str = field(repr=False)
  password: str = field(repr=False)


def resolve_credentials(provider: credentials.CredentialProvider,
                        profile: str | None = None,
                        reset: bool = False,
                        client_id: str | None = None,
                        client_secret: str | None = None,
                        password: str | None = None) -> VaultCredentials:
  """Resolves the three login credentials of |profile|."""
  return VaultCredentials(
      client_id=provider.resolve(client_id, credentials.BW_CLIENT_ID, profile,
                                 reset),
      client_secret=provider.resolve(client_secret,
                                     credentials.BW_CLIENT_SECRET, profile,
                                     reset),
      password=provider.resolve(password, credentials.BW_PASSWORD, profile,
                                reset))


def resolve_backup_password(provider: credentials.CredentialProvider,
                            explicit_value: str | None = None,
                            encrypt: bool = False,
                            reset: bool = False) -> str | None:
  """Returns the export encryption password, or None for no encryption.

  The stored backup password is global: it never carries a profile suffix.
  """
  if explicit_value:
    return explicit_value
  if not encrypt:
    return None
  return provider.resolve(None, credentials.BW_BACKUP_PASSWORD, None, reset)


def prepare_target_dir(path: str) -> str:
  """Expands |path|, creating it if needed. Returns the absolute path."""
  try:
    absolute_path = os.path.abspath(os.path.expanduser(path))
    os.makedirs(absolute_path, mode=0o755, exist_ok=True)
  except (OSError, ValueError) as e:
    raise errors.PathResolutionError(path, str(e)) from e

  return absolute_path


def session_mount(profile: str | None) -> PersistentMount:
  """Returns the private per-profile directory for a reusable vault session."""
  session_dir = os.path.join(SESSION_ROOT, profile or DEFAULT_SESSION_NAME)
  try:
    os.makedirs(session_dir, mode=0o700, exist_ok=True)
    os.chmod(session_dir, 0o700)
  except OSError as e:
    raise errors.PathResolutionError(session_dir, str(e)) from e

  return PersistentMount(host_path=session_dir, job_path=SESSION_JOB_PATH)


def build_job(target_dir: str,
              vault_credentials: VaultCredentials,
              profile: str | None = None,
              organization_id: str | None = None,
              backup_password: str | None = None,
              persist_session: bool = False,
              image: str | None = None) -> invocation.InvocationSpec:
  """Assembles the backup job for one vault.

  Raises:
    PathResolutionError: If a directory cannot be resolved.
    MissingDirectoryError: If |target_dir| does not exist.
  """
  env = environment.build_env([
      environment.sensitive('BW_CLIENTID', vault_credentials.client_id),
      environment.sensitive('BW_CLIENTSECRET', vault_credentials.client_secret),
      environment.sensitive('BW_PASSWORD', vault_credentials.password),
      environment.sensitive('BW_BACKUP_PASSWORD', backup_password or None),
      environment.structural('BW_PROFILE', profile or None),
      environment.structural('BW_ORGANIZATIONID', organization_id or None),
  ])

  mounts = list(VOLATILE_MOUNTS)
  if persist_session:
    mounts.append(session_mount(profile))

  return invocation.build(
      image or config.get_image(IMAGE_SETTING),
      target_dir,
      extra_mounts=mounts,
      env=env)


def run_job(spec: invocation.InvocationSpec,
            profile: str | None = None,
            organization_id: str | None = None,
            cancel_event=None) -> runner.JobResult:
  """Runs a backup job with its audit identity."""
  return runner.run_job(
      spec,
      context={
          'profile': profile,
          'organization': organization_id,
      },
      cancel_event=cancel_event,
      label=AUDIT_LABEL)


class BatchBackup:
  """Per-profile callbacks for containers.utils.batch.run_batch."""

  def __init__(self,
               provider: credentials.CredentialProvider,
               reset: bool = False,
               persist_session: bool = False,
               image: str | None = None,
               cancel_event=None):
    self.provider = provider
    self.reset = reset
    self.persist_session = persist_session
    self.image = image
    self.cancel_event = cancel_event

  def prepare(self, profile: BatchProfile) -> VaultCredentials:
    """Resolves the profile's credentials once for all of its jobs."""
    return resolve_credentials(self.provider, profile.name, self.reset)

  def job(self, profile: BatchProfile, organization_id: str | None,
          vault_credentials: VaultCredentials,
          backup_password: str | None) -> runner.JobResult:
    """Backs up the personal vault, or one organization vault."""
    target_dir = prepare_target_dir(profile.target_dir)
    spec = build_job(
        target_dir,
        vault_credentials,
        profile=profile.name,
        organization_id=organization_id,
        backup_password=backup_password,
        persist_session=self.persist_session,
        image=self.image)
    return run_job(spec, profile.name, organization_id, self.cancel_event)
