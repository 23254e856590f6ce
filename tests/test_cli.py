import os
import shutil
import tempfile
import unittest
from unittest.mock import patch

from PIL import Image

from studio_cli import main
from imaging_fixtures import decode, encode, oriented_jpeg, split_image


class TestCli(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp(prefix="studio-cli-test-")

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def write(self, name, data):
        path = os.path.join(self.temp_dir, name)
        with open(path, 'wb') as f:
            f.write(data)
        return path

    def read_image(self, path):
        with open(path, 'rb') as f:
            return decode(f.read())

    @patch('builtins.print')
    def test_orient_default_output(self, mock_print):
        path = self.write('photo.jpg', oriented_jpeg(split_image(40, 20), 8))

        self.assertEqual(main(['orient', path]), 0)

        self.assertEqual(self.read_image(os.path.join(self.temp_dir, 'photo_corrected.jpg')).size, (20, 40))

    @patch('builtins.print')
    def test_resize(self, mock_print):
        path = self.write('large.png', encode(Image.new('RGB', (300, 150))))
        output = os.path.join(self.temp_dir, 'small.jpg')

        self.assertEqual(main(['resize', path, '-o', output, '--max-dimension', '100']), 0)

        self.assertEqual(self.read_image(output).size, (100, 50))

    @patch('builtins.print')
    def test_reflect_stacked(self, mock_print):
        path = self.write('cutout.png', encode(Image.new('RGBA', (20, 50), (0, 0, 255, 255))))

        self.assertEqual(main(['reflect', path, '--height', '0.4', '--offset', '5', '--stack']), 0)

        self.assertEqual(self.read_image(os.path.join(self.temp_dir, 'cutout_reflection.png')).size, (20, 75))

    @patch('builtins.print')
    def test_rotate(self, mock_print):
        path = self.write('wide.png', encode(Image.new('RGB', (30, 10))))

        self.assertEqual(main(['rotate', path, '--degrees', '-90']), 0)

        self.assertEqual(self.read_image(os.path.join(self.temp_dir, 'wide_rotated.png')).size, (10, 30))

    @patch('builtins.print')
    def test_missing_input(self, mock_print):
        self.assertEqual(main(['rotate', os.path.join(self.temp_dir, 'missing.png')]), 1)

    @patch('builtins.print')
    def test_invalid_option(self, mock_print):
        path = self.write('cutout.png', encode(Image.new('RGBA', (8, 8))))
        self.assertEqual(main(['reflect', path, '--intensity', '3']), 1)

    @patch('builtins.print')
    def test_undecodable_input(self, mock_print):
        path = self.write('broken.png', b'not an image')
        self.assertEqual(main(['resize', path]), 1)
        self.assertIn("DECODE_FAILURE", mock_print.call_args[0][0])


if __name__ == '__main__':
    unittest.main()
