import re
from typing import Tuple

_IOS_RE = re.compile(r"iPhone|iPad|iPod", re.IGNORECASE)
_ANDROID_RE = re.compile(r"Android", re.IGNORECASE)


def is_ios(user_agent: str) -> bool:
    return bool(_IOS_RE.search(user_agent or ""))


def is_android(user_agent: str) -> bool:
    return bool(_ANDROID_RE.search(user_agent or ""))


def is_mobile(user_agent: str) -> bool:
    return is_android(user_agent) or is_ios(user_agent)


def default_camera_size(user_agent: str) -> Tuple[int, int]:
    """(width, height) to capture at; mobile devices get a smaller frame."""
    if is_mobile(user_agent):
        return 360, 270
    return 640, 480
