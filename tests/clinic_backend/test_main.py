import asyncio
import json
from types import SimpleNamespace

from fastapi.exceptions import RequestValidationError

from clinic_backend.core.errors import NotFoundError, StorageError, ValidationError
from clinic_backend.main import app, handle_api_error, handle_request_validation_error, handle_unexpected_error


class _FakeRequest:
    def __init__(self, *, method: str = 'POST', path: str = '/api/doctor-availabilities/generate'):
        self.method = method
        self.url = SimpleNamespace(path=path)


def test_validation_error_renders_message_envelope() -> None:
    response = asyncio.run(handle_api_error(_FakeRequest(), ValidationError('Missing required fields')))

    assert response.status_code == 400
    assert json.loads(response.body) == {'success': False, 'message': 'Missing required fields'}


def test_not_found_error_renders_message_envelope() -> None:
    response = asyncio.run(
        handle_api_error(_FakeRequest(), NotFoundError('No active schedules found for this doctor'))
    )

    assert response.status_code == 404
    assert json.loads(response.body) == {
        'success': False,
        'message': 'No active schedules found for this doctor',
    }


def test_storage_error_hides_internal_detail() -> None:
    response = asyncio.run(handle_api_error(_FakeRequest(), StorageError('connection refused on db-primary:5432')))

    assert response.status_code == 500
    assert json.loads(response.body) == {'success': False, 'error': 'Internal server error'}


def test_request_validation_error_renders_400() -> None:
    exc = RequestValidationError(
        [{'type': 'value_error', 'loc': ('body', 'dayOfWeek'), 'msg': 'Value error, dayOfWeek must be one of: Monday.'}]
    )

    response = asyncio.run(handle_request_validation_error(_FakeRequest(), exc))

    assert response.status_code == 400
    assert json.loads(response.body) == {'success': False, 'message': 'dayOfWeek must be one of: Monday.'}


def test_unexpected_error_renders_generic_500() -> None:
    response = asyncio.run(handle_unexpected_error(_FakeRequest(), RuntimeError('boom')))

    assert response.status_code == 500
    assert json.loads(response.body) == {'success': False, 'error': 'Internal server error'}


def test_routers_are_mounted_under_api_prefix() -> None:
    assert app.url_path_for('generate_availabilities') == '/api/doctor-availabilities/generate'
    assert app.url_path_for('get_schedule', schedule_id='sch-001') == '/api/doctor-schedules/sch-001'
    assert app.url_path_for('complete_appointment', appointment_id='apt-000001') == (
        '/api/appointments/apt-000001/complete'
    )
