from fastapi.responses import JSONResponse


def create_token_response(content: dict) -> JSONResponse:
    """
    Create a JSON response for a payload that carries tokens.

    Responses containing credentials must not be cached by the client
    or any intermediary, hence ``Cache-Control: no-store`` and
    ``Pragma: no-cache``.
    """
    return JSONResponse(
        content=content,
        headers={
            "Cache-Control": "no-store",
            "Pragma": "no-cache",
        },
    )
