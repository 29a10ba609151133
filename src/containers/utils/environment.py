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
"""Environment helpers.

Job environments are built from (name, value, sensitive) triples. The
sensitivity flag travels with the value so that log redaction can never
disagree with what is actually passed to the job.
"""

import ast
from dataclasses import dataclass
import os
from typing import Iterable


@dataclass(frozen=True)
class TaggedEnvVar:
  """An environment variable passed to a job."""
  name: str
  value: str
  sensitive: bool = False

  def __repr__(self):
    value = '***' if self.sensitive else repr(self.value)
    return (f'TaggedEnvVar(name={self.name!r}, value={value}, '
            f'sensitive={self.sensitive})')


TaggedEnvVarMap = dict[str, TaggedEnvVar]


def build_env(
    entries: Iterable[tuple[str, str | None, bool]]) -> TaggedEnvVarMap:
  """Builds a tagged environment map from (name, value, sensitive) triples.

  Entries with a None value are skipped, which lets callers list optional
  variables unconditionally. Insertion order is preserved.

  Raises:
    ValueError: If a name is empty or appears twice.
  """
  env = {}
  for name, value, sensitive in entries:
    if not name:
      raise ValueError('Environment variable name must not be empty.')
    if name in env:
      raise ValueError(f'Duplicate environment variable: {name}')
    if value is None:
      continue

    env[name] = TaggedEnvVar(name=name, value=str(value), sensitive=sensitive)

  return env


def sensitive(name: str, value: str | None) -> tuple[str, str | None, bool]:
  """Shorthand for a credential-derived entry."""
  return name, value, True


def structural(name: str, value: str | None) -> tuple[str, str | None, bool]:
  """Shorthand for a non-secret entry."""
  return name, value, False


def _eval_value(value_string):
  """Returns evaluated value."""
  try:
    return ast.literal_eval(value_string)
  except (ValueError, SyntaxError):
    # String fallback.
    return value_string


def get_value(environment_variable, default_value=None):
  """Return an environment variable value."""
  value_string = os.getenv(environment_variable)

  # value_string will be None if the variable is not defined.
  if value_string is None:
    return default_value

  return _eval_value(value_string)
