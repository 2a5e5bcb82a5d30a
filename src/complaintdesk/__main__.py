"""Run the complaintdesk API: ``python -m complaintdesk``."""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "complaintdesk.api:create_app",
        factory=True,
        host=os.environ.get("COMPLAINTDESK_HOST", "0.0.0.0"),
        port=int(os.environ.get("COMPLAINTDESK_PORT", "8000")),
        log_config=None,
    )


if __name__ == "__main__":
    main()
