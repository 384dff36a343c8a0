from pydantic import BaseModel


class ScrollResult(BaseModel):
    """One page of points returned by RAGClientInterface.do_scroll().

    Attributes:
        result:           Point dicts ("id", "payload" and optionally "vector").
        status:           Backend status string (e.g. "ok").
        time:             Time taken by the backend to execute the request.
        next_page_offset: Cursor for the next page, None on the last page.
    """

    result: list[dict]
    status: str
    time: float
    next_page_offset: str | int | None = None
