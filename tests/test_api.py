import io
import os
import unittest
from unittest.mock import patch

from PIL import Image

from api.auth import rate_limit_storage
from api.utils import format_file_size, output_filename, parse_bool
from app import app
from studio_imaging.dataurl import parse_data_url, to_data_url
from imaging_fixtures import decode, encode, oriented_jpeg, split_image

API_KEY = 'test-key-123'


class ApiTestCase(unittest.TestCase):

    def setUp(self):
        self.env = patch.dict(os.environ, {'API_KEYS': API_KEY, 'API_RATE_LIMIT_REQUESTS': '100'})
        self.env.start()
        rate_limit_storage.clear()
        app.config['TESTING'] = True
        self.client = app.test_client()
        self.headers = {'X-API-Key': API_KEY}

    def tearDown(self):
        self.env.stop()
        rate_limit_storage.clear()

    def upload(self, path, data, filename='photo.png', **fields):
        fields['image'] = (io.BytesIO(data), filename)
        return self.client.post(path, data=fields, headers=self.headers, content_type='multipart/form-data')

    def png(self, width=32, height=16, color=(200, 30, 30, 255)):
        return encode(Image.new('RGBA', (width, height), color))


class TestAuth(ApiTestCase):

    def test_missing_key(self):
        response = self.client.post('/api/v1/transparency')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.get_json()['error_code'], 'AUTH_001')

    def test_invalid_key(self):
        response = self.client.post('/api/v1/transparency', headers={'X-API-Key': 'wrong'})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.get_json()['error_code'], 'AUTH_002')

    def test_rate_limit(self):
        with patch.dict(os.environ, {'API_RATE_LIMIT_REQUESTS': '1'}):
            first = self.upload('/api/v1/transparency', self.png())
            second = self.upload('/api/v1/transparency', self.png())
        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 429)
        self.assertEqual(second.get_json()['error_code'], 'RATE_001')

    def test_validate_endpoint(self):
        response = self.client.post('/api/v1/validate', headers=self.headers)
        body = response.get_json()
        self.assertEqual(response.status_code, 200)
        self.assertTrue(body['success'])
        self.assertEqual(body['api_key_info']['rate_limit_status'], 'OK')

    def test_health(self):
        body = self.client.get('/api/v1/health').get_json()
        self.assertEqual(body['status'], 'healthy')
        self.assertEqual(body['services']['surface_backend']['name'], 'pillow')
        self.assertEqual(self.client.get('/health').status_code, 200)


class TestOrientEndpoint(ApiTestCase):

    def test_upload_corrected(self):
        data = oriented_jpeg(split_image(40, 20), 6)
        response = self.upload('/api/v1/orient', data, filename='photo.jpg')
        body = response.get_json()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(body['metadata']['orientation'], 6)
        self.assertTrue(body['metadata']['corrected'])
        self.assertEqual((body['metadata']['width'], body['metadata']['height']), (20, 40))

        corrected, media_type = parse_data_url(body['image_data'])
        self.assertEqual(media_type, 'image/jpeg')
        self.assertEqual(decode(corrected).size, (20, 40))

    def test_data_url_without_orientation_returned_unchanged(self):
        data = self.png()
        response = self.client.post('/api/v1/orient', json={'image_data': to_data_url(data, 'image/png')},
                                    headers=self.headers)
        body = response.get_json()

        self.assertEqual(response.status_code, 200)
        self.assertFalse(body['metadata']['corrected'])
        self.assertEqual(parse_data_url(body['image_data'])[0], data)

    def test_missing_image(self):
        response = self.client.post('/api/v1/orient', json={}, headers=self.headers)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['error_code'], 'VALIDATION_001')

    def test_invalid_extension(self):
        response = self.upload('/api/v1/orient', b'hello', filename='notes.txt')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['error_code'], 'VALIDATION_002')

    def test_invalid_data_url(self):
        response = self.client.post('/api/v1/orient', json={'image_data': 'not-a-data-url'}, headers=self.headers)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['error_code'], 'VALIDATION_002')

    def test_non_string_data_url(self):
        response = self.client.post('/api/v1/orient', json={'image_data': 123}, headers=self.headers)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['error_code'], 'VALIDATION_002')


class TestResizeEndpoint(ApiTestCase):

    def test_resize_with_parameters(self):
        response = self.upload('/api/v1/resize', self.png(64, 32), max_dimension='16', target_bytes='100000')
        body = response.get_json()

        self.assertEqual(response.status_code, 200)
        self.assertEqual((body['metadata']['width'], body['metadata']['height']), (16, 8))
        self.assertEqual(body['metadata']['media_type'], 'image/jpeg')
        self.assertEqual(body['output_filename'], 'compressed_photo.jpg')

    def test_invalid_parameter(self):
        response = self.upload('/api/v1/resize', self.png(), max_dimension='big')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['error_code'], 'VALIDATION_004')

    def test_undecodable_image(self):
        response = self.upload('/api/v1/resize', b'not an image', filename='broken.png')
        body = response.get_json()

        self.assertEqual(response.status_code, 422)
        self.assertEqual(body['error_code'], 'PROCESSING_001')
        self.assertEqual(body['failure'], 'DECODE_FAILURE')


class TestReflectionEndpoints(ApiTestCase):

    def test_single_reflection(self):
        response = self.upload('/api/v1/reflection', self.png(20, 50), height='0.4', blur='0')
        body = response.get_json()

        self.assertEqual(response.status_code, 200)
        self.assertEqual((body['metadata']['width'], body['metadata']['height']), (20, 20))
        self.assertEqual(body['metadata']['options']['height'], 0.4)
        self.assertFalse(body['metadata']['stacked'])

    def test_stacked_reflection(self):
        response = self.upload('/api/v1/reflection', self.png(20, 50), height='0.4', offset='10', stack='true')
        body = response.get_json()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(body['metadata']['height'], 80)
        self.assertTrue(body['metadata']['stacked'])

    def test_invalid_option(self):
        response = self.upload('/api/v1/reflection', self.png(), intensity='2')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['error_code'], 'VALIDATION_004')

    def test_batch_reports_failures_per_item(self):
        payload = {
            'images': [
                {'name': 'bottle', 'imageData': to_data_url(self.png(10, 40), 'image/png')},
                {'name': 'broken', 'imageData': 'data:image/png;base64,AAAA'},
            ],
            'options': {'height': 0.5, 'blur': 2},
        }
        response = self.client.post('/api/v1/reflections', json=payload, headers=self.headers)
        body = response.get_json()

        self.assertEqual(response.status_code, 200)
        self.assertEqual([item['name'] for item in body['reflections']], ['bottle', 'broken'])
        self.assertTrue(body['reflections'][0]['success'])
        self.assertEqual(body['reflections'][0]['metadata']['height'], 20)
        self.assertEqual(body['reflections'][1]['error']['code'], 'DECODE_FAILURE')
        self.assertEqual(body['metadata']['failed'], 1)

    def test_batch_rejects_non_bytes_image_data(self):
        payload = {
            'images': [
                {'name': 'bottle', 'imageData': to_data_url(self.png(10, 40), 'image/png')},
                {'name': 'numeric', 'imageData': 123},
            ],
        }
        response = self.client.post('/api/v1/reflections', json=payload, headers=self.headers)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['error_code'], 'VALIDATION_004')

    def test_batch_fail_fast(self):
        payload = {
            'images': [{'name': 'broken', 'imageData': 'data:image/png;base64,AAAA'}],
            'fail_fast': True,
        }
        response = self.client.post('/api/v1/reflections', json=payload, headers=self.headers)
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.get_json()['error_code'], 'PROCESSING_001')

    def test_batch_requires_images(self):
        response = self.client.post('/api/v1/reflections', json={'images': []}, headers=self.headers)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['error_code'], 'VALIDATION_001')


class TestRotateAndTransparency(ApiTestCase):

    def test_rotate(self):
        response = self.upload('/api/v1/rotate', self.png(30, 10), degrees='-90')
        body = response.get_json()
        self.assertEqual(response.status_code, 200)
        self.assertEqual((body['metadata']['width'], body['metadata']['height']), (10, 30))

    def test_rotate_invalid_angle(self):
        response = self.upload('/api/v1/rotate', self.png(), degrees='45')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['error_code'], 'VALIDATION_004')

    def test_transparency(self):
        response = self.upload('/api/v1/transparency', self.png(100, 100, (0, 0, 0, 0)))
        body = response.get_json()
        self.assertTrue(body['metadata']['has_transparency'])
        self.assertEqual(body['metadata']['transparency_percentage'], 100.0)


class TestUtils(unittest.TestCase):

    def test_output_filename(self):
        self.assertEqual(output_filename('my photo.jpeg', 'compressed', 'image/jpeg'), 'compressed_my_photo.jpg')
        self.assertEqual(output_filename('cutout.png', 'reflection', 'image/png'), 'reflection_cutout.png')
        self.assertEqual(output_filename('', 'rotated', 'image/png'), 'rotated_image.png')

    def test_format_file_size(self):
        self.assertEqual(format_file_size(512), '512 B')
        self.assertEqual(format_file_size(2048), '2.0 KB')
        self.assertEqual(format_file_size(5 * 1024 * 1024), '5.0 MB')

    def test_parse_bool(self):
        self.assertTrue(parse_bool('true'))
        self.assertTrue(parse_bool(True))
        self.assertFalse(parse_bool('no'))
        self.assertTrue(parse_bool(None, default=True))


if __name__ == '__main__':
    unittest.main()
