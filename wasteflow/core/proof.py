from typing import Optional

from wasteflow.models.job_order import JobOrderRecord


class ProofOfCompletionGate:
    """Holds the proof photo URL for the job being completed.

    A record fetched with a proof already on it satisfies the gate
    without a second upload.
    """

    def __init__(self, url: Optional[str] = None):
        self._url = (url or "").strip() or None

    @classmethod
    def from_record(cls, record: JobOrderRecord) -> "ProofOfCompletionGate":
        return cls(record.proof_of_completion_url)

    @property
    def url(self) -> Optional[str]:
        return self._url

    def attach(self, url: str) -> None:
        url = (url or "").strip()
        if not url:
            raise ValueError("proof photo URL cannot be blank")
        self._url = url

    def clear(self) -> None:
        self._url = None

    def is_satisfied(self) -> bool:
        return self._url is not None

    def __repr__(self) -> str:
        return f"ProofOfCompletionGate(url={self._url!r})"
