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
"""Tests for the docker utility functions.

  For running all the tests, use (from the root of the project):
  python -m unittest discover -s src/containers/tests -p docker_utils_test.py -v
"""

import os
import unittest
from unittest import mock

import docker

from containers.utils import docker_utils
from containers.utils import errors


class CheckDockerSetupTest(unittest.TestCase):
  """Tests for check_docker_setup."""

  def setUp(self):
    super().setUp()
    self.mock_from_env = self.enterContext(
        mock.patch.object(docker, 'from_env', autospec=True))
    self.mock_secho = self.enterContext(
        mock.patch('click.secho', autospec=True))
    self.mock_echo = self.enterContext(mock.patch('click.echo', autospec=True))

  def test_success(self):
    mock_client = mock.Mock()
    self.mock_from_env.return_value = mock_client

    self.assertEqual(mock_client, docker_utils.check_docker_setup())
    mock_client.ping.assert_called_once()

  def test_permission_denied(self):
    self.mock_from_env.side_effect = docker.errors.DockerException(
        'Permission denied')

    self.assertIsNone(docker_utils.check_docker_setup())
    self.assertIn('Permission denied', self.mock_secho.call_args_list[0][0][0])

  def test_not_running(self):
    self.mock_from_env.return_value.ping.side_effect = (
        docker.errors.DockerException('connection refused'))

    self.assertIsNone(docker_utils.check_docker_setup())
    self.assertIn('Docker is not running', self.mock_secho.call_args[0][0])


class GetClientTest(unittest.TestCase):
  """Tests for get_client."""

  def test_unreachable(self):
    with mock.patch.object(
        docker,
        'from_env',
        side_effect=docker.errors.DockerException('refused')):
      with self.assertRaises(errors.DaemonStateError):
        docker_utils.get_client()


class ContainerTableTest(unittest.TestCase):
  """Tests for find_containers and remove_container."""

  def _container(self, name):
    container = mock.Mock()
    container.name = name
    return container

  def test_exact_name_only(self):
    client = mock.Mock()
    exact = self._container('ibgateway')
    client.containers.list.return_value = [
        self._container('ibgateway-2'), exact
    ]

    self.assertEqual([exact], docker_utils.find_containers(client, 'ibgateway'))
    client.containers.list.assert_called_once_with(
        all=True, filters={'name': 'ibgateway'})

  def test_list_failure(self):
    client = mock.Mock()
    client.containers.list.side_effect = docker.errors.APIError('down')

    with self.assertRaises(errors.DaemonStateError):
      docker_utils.find_containers(client, 'ibgateway')

  def test_remove_not_found(self):
    container = self._container('ibgateway')
    container.remove.side_effect = docker.errors.NotFound('gone')

    docker_utils.remove_container(container)
    container.remove.assert_called_once_with(force=True)

  def test_remove_failure(self):
    container = self._container('ibgateway')
    container.remove.side_effect = docker.errors.APIError('busy')

    with self.assertRaises(errors.DaemonStateError):
      docker_utils.remove_container(container)


class DockerBinaryTest(unittest.TestCase):

  def test_default(self):
    with mock.patch.dict(os.environ, {}, clear=True):
      self.assertEqual('docker', docker_utils.docker_binary())

  def test_override(self):
    with mock.patch.dict(os.environ, {'CONTAINERS_DOCKER': 'podman'}):
      self.assertEqual('podman', docker_utils.docker_binary())


if __name__ == '__main__':
  unittest.main()
