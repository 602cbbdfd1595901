# tests/test_main.py
from fastapi.testclient import TestClient
from axioscan.errors import (
    ConsistencyViolation,
    EmptySelectionError,
    ImageCodecError,
    InsufficientInputError,
    NoExportableContentError,
    NotFoundError,
    RemoteIOError,
)
from axioscan.main import app, status_code_for

def test_root():
    with TestClient(app) as client:
        response = client.get("/")
        assert response.status_code == 200
        assert response.json() == {"message": "AxioScan API is running"}

def test_error_status_codes():
    assert status_code_for(NotFoundError("x")) == 404
    assert status_code_for(InsufficientInputError("x")) == 400
    assert status_code_for(EmptySelectionError("x")) == 400
    assert status_code_for(ImageCodecError("x")) == 422
    assert status_code_for(NoExportableContentError("x")) == 422
    assert status_code_for(ConsistencyViolation("x")) == 409
    assert status_code_for(RemoteIOError("x")) == 502
