"""
构建编排器

通知 Learn 有新内容可构建；目录内容再以有限次数轮询构建状态，
把异步的远端构建转换为同步结果。

状态流转: Notified -> Polling -> {Ready, Failed, Exhausted}
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from ..api.client import ApiRequestError
from ..api.models import BuildJob, BuildStatus
from ..utils.logging import info, debug, LogStage
from .preview_context import (
    BuildFailed,
    NotifyError,
    PollError,
    PollExhausted,
    PreviewCancelled,
)

DEFAULT_MAX_ATTEMPTS = 20


class BuildApi(Protocol):
    """远端构建服务"""

    def notify_new_content(self, delivery_key: str, is_directory: bool) -> BuildJob:
        ...

    def poll_job(self, job_id: str, remaining_attempts: int) -> BuildJob:
        ...


class PollOutcome(str, Enum):
    """轮询结果标记"""
    READY = "ready"
    FAILED = "failed"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class PollResult:
    """轮询结果"""
    outcome: PollOutcome
    job: Optional[BuildJob]
    attempts: int


class BuildOrchestrator:
    """构建编排器

    最大轮询次数按值传入，剩余次数只在本地循环中递减；两次查询之间按指数退避等待，
    最后一次查询之后不再等待。
    """

    def __init__(
        self,
        api: BuildApi,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval: float = 2.0,
        backoff_factor: float = 1.5,
        max_interval: float = 15.0,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts 必须至少为 1")
        self.api = api
        self.max_attempts = max_attempts
        self.interval = interval
        self.backoff_factor = backoff_factor
        self.max_interval = max(max_interval, interval)

    def notify(self, delivery_key: str, is_directory: bool) -> BuildJob:
        """通知 Learn 存储中有新内容

        单文件内容在远端同步构建，返回的快照可能已经是终态。

        Raises:
            NotifyError: 请求失败
            BuildFailed: 远端直接报告构建失败
        """
        try:
            job = self.api.notify_new_content(delivery_key, is_directory)
        except ApiRequestError as e:
            raise NotifyError(f"通知 Learn 构建新预览内容失败: {e}") from e

        debug(f"通知完成 release_id={job.job_id} status={job.status.value}", stage=LogStage.NOTIFY)

        if job.status is BuildStatus.FAILED:
            raise BuildFailed(f"Learn 报告预览构建失败 (release_id={job.job_id})")
        return job

    def poll(self, job_id: str, cancel_event: Optional[threading.Event] = None) -> PollResult:
        """轮询构建状态直到终态或次数用尽

        Raises:
            PollError: 某次查询传输失败
            PreviewCancelled: 等待期间被取消
        """
        cancel_event = cancel_event or threading.Event()
        remaining = self.max_attempts
        attempts = 0
        job = None

        while remaining > 0:
            if cancel_event.is_set():
                raise PreviewCancelled("轮询构建状态时被取消")

            try:
                job = self.api.poll_job(job_id, remaining)
            except ApiRequestError as e:
                raise PollError(f"轮询 Learn 构建状态失败: {e}") from e

            attempts += 1
            remaining -= 1

            if job.status.is_terminal:
                outcome = PollOutcome.READY if job.status is BuildStatus.READY else PollOutcome.FAILED
                return PollResult(outcome, job, attempts)

            debug(f"第 {attempts} 次轮询: status={job.status.value}, 剩余 {remaining} 次", stage=LogStage.POLL)

            if remaining and cancel_event.wait(self.delay_for(attempts)):
                raise PreviewCancelled("轮询构建状态时被取消")

        return PollResult(PollOutcome.EXHAUSTED, job, attempts)

    def await_preview(self, job_id: str, cancel_event: Optional[threading.Event] = None) -> str:
        """轮询并把结果标记转换为预览地址或分类错误

        Raises:
            PollError: 查询失败或 ready 状态缺少预览地址
            BuildFailed: 远端报告构建失败
            PollExhausted: 次数用尽仍未得到终态
        """
        result = self.poll(job_id, cancel_event)

        if result.outcome is PollOutcome.READY:
            if not result.job or not result.job.preview_url:
                raise PollError(f"构建已完成但 Learn 未返回预览地址 (release_id={job_id})")
            info(f"构建完成，共轮询 {result.attempts} 次", stage=LogStage.POLL)
            return result.job.preview_url

        if result.outcome is PollOutcome.FAILED:
            raise BuildFailed(f"Learn 报告预览构建失败 (release_id={job_id})")

        raise PollExhausted(
            f"轮询 {result.attempts} 次后构建仍未完成 (release_id={job_id})",
            job_id=job_id,
            attempts=result.attempts,
        )

    def run(
        self,
        delivery_key: str,
        is_directory: bool,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        """通知并（目录内容时）轮询，返回预览地址"""
        job = self.notify(delivery_key, is_directory)
        return self.preview_url_for(job, is_directory, cancel_event)

    def preview_url_for(
        self,
        job: BuildJob,
        is_directory: bool,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        """由通知快照得到预览地址

        单文件内容在远端同步构建，直接取快照中的地址，不轮询；目录内容按 release_id 轮询。

        Raises:
            NotifyError: 单文件快照缺少地址，或目录快照缺少 release_id
        """
        if not is_directory:
            if not job.preview_url:
                raise NotifyError(f"Learn 未返回预览地址 (status={job.status.value})")
            debug("单文件内容已同步构建，跳过轮询", stage=LogStage.POLL)
            return job.preview_url

        if not job.job_id:
            raise NotifyError("Learn 未返回 release_id，无法轮询构建状态")
        return self.await_preview(job.job_id, cancel_event)

    def delay_for(self, attempt: int) -> float:
        """第 attempt 次查询之后的等待时间（秒）"""
        delay = self.interval * (self.backoff_factor ** (attempt - 1))
        return min(delay, self.max_interval)
