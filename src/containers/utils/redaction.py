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
"""Redacts secret environment values from docker argument vectors."""

import shlex
from typing import Mapping
from typing import Sequence

from containers.utils.environment import TaggedEnvVar

REDACTION_MARKER = '***REDACTED***'

ENV_FLAGS = ('-e', '--env')


def _redact_pair(pair: str, env: Mapping[str, TaggedEnvVar]) -> str:
  name, separator, _ = pair.partition('=')
  if not separator:
    return pair

  env_var = env.get(name)
  if env_var is None or not env_var.sensitive:
    return pair

  return f'{name}={REDACTION_MARKER}'


def redact(argv: Sequence[str], env: Mapping[str, TaggedEnvVar]) -> list[str]:
  """Returns a copy of |argv| with sensitive environment values replaced.

  |argv| itself is left untouched, callers execute it after logging the
  redacted copy.
  """
  result = list(argv)
  for i in range(len(result) - 1):
    if argv[i] in ENV_FLAGS:
      result[i + 1] = _redact_pair(argv[i + 1], env)

  return result


def format_command(binary: str, argv: Sequence[str],
                   env: Mapping[str, TaggedEnvVar]) -> str:
  """Returns the shell-quoted, redacted command line for logging."""
  return ' '.join(shlex.quote(arg) for arg in [binary] + redact(argv, env))
