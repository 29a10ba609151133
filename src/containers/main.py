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
"""Containers CLI."""

import logging

import click

from containers.commands import bw_backup
from containers.commands import doctor
from containers.commands import ibgateway
from containers.commands import pdf_compress
from containers.utils import logs


@click.group()
@click.option(
    '--verbose', '-v', is_flag=True, default=False, help='Log diagnostics.')
def cli(verbose: bool):
  """Container-based utility tools."""
  logs.configure(level=logging.INFO if verbose else logging.WARNING)


cli.add_command(pdf_compress.cli)
cli.add_command(ibgateway.cli)
cli.add_command(bw_backup.cli)
cli.add_command(doctor.cli)

if __name__ == '__main__':
  cli()
