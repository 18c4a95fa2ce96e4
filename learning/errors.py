from __future__ import annotations


class StudyLogError(Exception):
    """Base class for failures that end up as a short user-facing reply."""

    user_message = "❌ 執行失敗，請稍後再試。"

    def __init__(self, detail: str = "", *, user_message: str | None = None) -> None:
        super().__init__(detail or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class ProfileUnavailable(StudyLogError):
    user_message = "❌ 請先執行 /start 註冊"


class ChannelProvisioningFailed(StudyLogError):
    user_message = "❌ /start 失敗：無法建立私人訓練頻道"


class ClassificationFailed(StudyLogError):
    user_message = "❌ 系統忙碌中，請稍後再試"


class PersistenceFailed(StudyLogError):
    user_message = "❌ 儲存失敗，請稍後再試"
