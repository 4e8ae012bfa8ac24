"""Raw response value returned by Driver.do_post_http_response."""

from dataclasses import dataclass

import httpx


@dataclass(frozen=True)
class DriverResponse:
    """Status code and body text of a received HTTP response."""

    status_code: int
    message: str

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> "DriverResponse":
        return cls(status_code=response.status_code, message=response.text)

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300
