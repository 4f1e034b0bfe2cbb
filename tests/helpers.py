import httpx


def offline(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("network unreachable", request=request)


def html_response(markup: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code, text=markup, headers={"content-type": "text/html; charset=utf-8"}
    )


def image_response(size: int = 2048, content_type: str = "image/jpeg") -> httpx.Response:
    return httpx.Response(
        200, headers={"content-type": content_type, "content-length": str(size)}
    )
