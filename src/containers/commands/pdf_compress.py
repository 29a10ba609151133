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
"""Compresses a PDF file with Ghostscript."""

import os
import sys

import click

from containers.utils import config
from containers.utils import errors
from containers.utils import invocation
from containers.utils import runner

QUALITIES = ('ebook', 'screen', 'printer', 'prepress', 'default')

IMAGE_SETTING = 'pdf_compress'


def output_filename(input_filename: str, quality: str) -> str:
  """Returns '<stem>_<quality>.pdf' for |input_filename|."""
  stem, extension = os.path.splitext(input_filename)
  if extension.lower() != '.pdf':
    stem = input_filename
  return f'{stem}_{quality}.pdf'


def ghostscript_args(input_filename: str, quality: str) -> list[str]:
  """Returns the Ghostscript arguments for compressing |input_filename|."""
  workspace = invocation.WORKSPACE_PATH
  return [
      '-sDEVICE=pdfwrite',
      '-dCompatibilityLevel=1.4',
      f'-dPDFSETTINGS=/{quality}',
      '-o',
      f'{workspace}/{output_filename(input_filename, quality)}',
      f'{workspace}/{input_filename}',
  ]


def build_job(file_path: str, quality: str) -> invocation.InvocationSpec:
  """Assembles the compression job for |file_path|.

  The file's directory becomes the job's working directory, so the output
  is written next to the input.
  """
  if quality not in QUALITIES:
    raise ValueError(f'Invalid quality: {quality}')

  absolute_path = os.path.abspath(os.path.expanduser(file_path))
  if not os.path.isfile(absolute_path):
    raise errors.PathResolutionError(absolute_path, 'file does not exist')

  directory, filename = os.path.split(absolute_path)
  return invocation.build(
      config.get_image(IMAGE_SETTING),
      directory,
      trailing_args=ghostscript_args(filename, quality))


@click.command(name='pdf-compress', help='Compress PDF files using Ghostscript')
@click.argument('file_path', metavar='FILE')
@click.option(
    '--quality',
    '-q',
    default='ebook',
    show_default=True,
    type=click.Choice(QUALITIES),
    help='Compression quality.')
def cli(file_path: str, quality: str) -> None:
  """Compresses FILE into <name>_<quality>.pdf in the same directory."""
  try:
    spec = build_job(file_path, quality)
    result = runner.run_job(
        spec,
        context={'file': os.path.basename(file_path)},
        cancel_event=runner.cancel_on_signals(),
        label='PDF compression')
    result.raise_for_status()
  except errors.Error as e:
    click.secho(f'Error: {e}', fg='red', err=True)
    sys.exit(errors.exit_code_for(e))

  output_path = os.path.join(spec.work_dir.host_path,
                             output_filename(os.path.basename(file_path),
                                             quality))
  click.secho(f'Compressed PDF written to {output_path}', fg='green')
