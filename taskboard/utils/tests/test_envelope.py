from rest_framework import status

from taskboard.utils.envelope import envelope


def test_success_envelope_omits_empty_parts():
    response = envelope()
    assert response.status_code == status.HTTP_200_OK
    assert response.data == {"success": True}


def test_envelope_with_message_and_data():
    response = envelope({"task": {"id": 1}}, message="Done", status=201)
    assert response.status_code == status.HTTP_201_CREATED
    assert response.data == {
        "success": True,
        "message": "Done",
        "data": {"task": {"id": 1}},
    }


def test_failure_envelope_lists_errors():
    response = envelope(
        success=False,
        message="Validation failed",
        errors=[{"field": "title", "message": "Task title is required"}],
        status=400,
    )
    assert response.data["success"] is False
    assert response.data["errors"][0]["field"] == "title"
