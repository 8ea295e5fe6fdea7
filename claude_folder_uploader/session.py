import threading
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait

from .api import UploadClient
from .curl import parse_curl
from .errors import SessionError
from .files import FileEnumerator, check_folder
from .ignore import IgnoreFilter
from .keep import KeepConfig
from .models import Outcome, Progress, SessionState, UploadResult

MAX_WORKERS = 4


class UploadSession:
    """One run of "enumerate the folder, upload each candidate, collect results".

    IDLE -> RUNNING -> COMPLETED, or ABORTED once cancel() was called. Results are
    only ever appended by the session itself, under one lock.
    """

    def __init__(self, template, enumerator, client=None, workers=1, on_result=None, on_dispatch=None):
        if not 1 <= workers <= MAX_WORKERS:
            raise ValueError(f"workers must be between 1 and {MAX_WORKERS}")
        self.template = template
        self.enumerator = enumerator
        self.client = client or UploadClient(template)
        self.workers = workers
        self.on_result = on_result
        self.on_dispatch = on_dispatch

        self._lock = threading.Lock()
        self._cancelled = threading.Event()
        self._state = SessionState.IDLE
        self._results = []
        self._total = 0
        self.current_file = None

    @property
    def root(self):
        return self.enumerator.root

    @property
    def state(self):
        return self._state

    @property
    def results(self):
        with self._lock:
            return list(self._results)

    @property
    def progress(self):
        with self._lock:
            counts = {outcome: 0 for outcome in Outcome}
            for result in self._results:
                counts[result.outcome] += 1
            return Progress(
                total=self._total,
                processed=len(self._results),
                succeeded=counts[Outcome.SUCCESS],
                failed=counts[Outcome.FAILED],
                skipped=counts[Outcome.SKIPPED],
            )

    @property
    def cancelled(self):
        return self._cancelled.is_set()

    def cancel(self):
        """Stop dispatching new files; uploads already sent still finish."""
        self._cancelled.set()
        with self._lock:
            if self._state is SessionState.IDLE:
                self._state = SessionState.ABORTED

    def run(self):
        with self._lock:
            if self._state is not SessionState.IDLE:
                raise SessionError(f"Session cannot be started, it is {self._state.value}")
            self._state = SessionState.RUNNING

        finished = False
        try:
            entries = list(self.enumerator.entries())
            with self._lock:
                self._total = len(entries)

            if self.workers == 1:
                self._run_sequential(entries)
            else:
                self._run_pool(entries)
            finished = True
        finally:
            with self._lock:
                if finished and not self._cancelled.is_set():
                    self._state = SessionState.COMPLETED
                else:
                    self._state = SessionState.ABORTED
                self.current_file = None
        return self.results

    def _run_sequential(self, entries):
        for candidate, reason in entries:
            if self._cancelled.is_set():
                break
            if reason is not None:
                self._record(UploadResult.skip(candidate, reason))
                continue
            self._dispatch(candidate)

    def _run_pool(self, entries):
        pending = set()
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            try:
                for candidate, reason in entries:
                    if self._cancelled.is_set():
                        break
                    if reason is not None:
                        self._record(UploadResult.skip(candidate, reason))
                        continue
                    while len(pending) >= self.workers:
                        done, pending = wait(pending, return_when=FIRST_COMPLETED)
                        for future in done:
                            future.result()
                    # a slot freed up, but the user may have cancelled meanwhile
                    if self._cancelled.is_set():
                        break
                    pending.add(executor.submit(self._dispatch, candidate))
            finally:
                done, _ = wait(pending)
            for future in done:
                future.result()

    def _dispatch(self, candidate):
        self.current_file = candidate.relative_path
        if self.on_dispatch:
            self.on_dispatch(candidate)
        self._record(self.client.upload(candidate))

    def _record(self, result):
        with self._lock:
            self._results.append(result)
        if self.on_result:
            self.on_result(result)


class Uploader:
    """Owns the current upload session; starting a new one supersedes the last."""

    def __init__(self, client_factory=UploadClient):
        self.client_factory = client_factory
        self.session = None

    @property
    def running(self):
        return self.session is not None and self.session.state is SessionState.RUNNING

    def prepare(self, curl_text, folder, ignore_file='.gitignore', sections=(), workers=1, timeout=None,
                on_result=None, on_dispatch=None):
        """Validate the inputs and create a fresh IDLE session.

        Raises ParseError or FolderAccessError before anything is uploaded, and
        SessionError while another session is still running.
        """
        if self.running:
            raise SessionError("An upload is already running")

        template = parse_curl(curl_text)
        check_folder(folder)

        keep = KeepConfig.from_folder(folder)
        if sections and keep is None:
            raise SessionError("Sections were selected but the folder has no .claudekeep file")
        if sections and keep.unknown_sections(sections):
            raise SessionError(f"Unknown .claudekeep sections: {', '.join(keep.unknown_sections(sections))}")

        enumerator = FileEnumerator(
            folder,
            ignore_filter=IgnoreFilter.from_folder(folder, ignore_file),
            keep=keep,
            sections=sections,
        )
        client_kwargs = {} if timeout is None else {'timeout': timeout}
        client = self.client_factory(template, **client_kwargs)

        self.session = UploadSession(template, enumerator, client=client, workers=workers,
                                     on_result=on_result, on_dispatch=on_dispatch)
        return self.session

    def clear(self):
        if self.running:
            raise SessionError("Cannot clear a running upload, cancel it first")
        self.session = None
