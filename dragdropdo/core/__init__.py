"""Core control flow: multipart upload orchestration and status polling.

Both components talk to the remote side only through a Transport.
"""

from dragdropdo.core.polling import StatusPoller
from dragdropdo.core.upload import UploadOrchestrator, compute_part_ranges, plan_upload

__all__ = ["StatusPoller", "UploadOrchestrator", "compute_part_ranges", "plan_upload"]
