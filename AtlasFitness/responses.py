from rest_framework.response import Response
from rest_framework import status
from rest_framework.views import exception_handler

def api_response(status_code, message, data=None, status_text="success", **extra):
    """
    Helper function to create a standardized API response.
    """
    response_data = {
        "success": status_text == "success",
        "status": status_text,
        "code": status_code,
        "message": message,
    }
    if data is not None:
        response_data["data"] = data
    response_data.update(extra)
    return Response(response_data, status=status_code)

def success_response(message, data=None, status_code=status.HTTP_200_OK, **extra):
    return api_response(status_code, message, data, "success", **extra)

def error_response(message, data=None, status_code=status.HTTP_400_BAD_REQUEST, **extra):
    return api_response(status_code, message, data, "error", **extra)

def not_found_response(message="Not found.", data=None):
    return error_response(message, data, status.HTTP_404_NOT_FOUND)

def server_error_response(message="Internal server error"):
    return error_response(message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def api_exception_handler(exc, context):
    """Wrap DRF's own error responses (auth, permission, parse errors) in the standard envelope."""
    response = exception_handler(exc, context)
    if response is None:
        return None

    detail = response.data
    if isinstance(detail, dict) and 'detail' in detail:
        message = str(detail['detail'])
        errors = None
    else:
        message = "Invalid data"
        errors = detail

    body = {
        "success": False,
        "status": "error",
        "code": response.status_code,
        "message": message,
    }
    if errors is not None:
        body["errors"] = errors
    response.data = body
    return response


def validation_error_response(exc, message="Invalid data"):
    """400 response for a Django ``ValidationError`` raised below the serializer layer."""
    errors = exc.message_dict if hasattr(exc, 'error_dict') else {'non_field_errors': exc.messages}
    return error_response(message, errors=errors)
