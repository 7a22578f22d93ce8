from PySide6.QtCore import QObject, QTimer, Signal
from ff.common.logger import log
from ff.core.idle import IdleReconciler, POLL_INTERVAL_SECONDS


# Drives IdleReconciler.check() off a QTimer and hands reconciliation requests to the UI as a signal, one at a time.
# A request raised while the previous one is still being answered waits in a queue until request_done() is called.
class IdleMonitor(QObject):

    reconciliation_requested = Signal(object)

    def __init__(self, reconciler: IdleReconciler, interval_ms=POLL_INTERVAL_SECONDS * 1000, parent=None):
        super().__init__(parent)
        self._reconciler = reconciler
        self._active = False
        self._queue = []
        self._outstanding = None
        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._tick)

    @property
    def running(self):
        return self._active and self._timer.isActive()

    # The request currently handed to the UI, if any
    @property
    def outstanding(self):
        return self._outstanding

    def start(self):
        if self._active:
            return
        self._active = True
        self._timer.start()
        log.debug(f"Idle monitor started, polling every {self._timer.interval()}ms")
        self._tick()

    def stop(self):
        self._active = False
        self._timer.stop()
        log.debug("Idle monitor stopped")

    def _tick(self):
        if not self._active:
            return
        request = self._reconciler.check()
        if request is None:
            return
        if self._outstanding is not None:
            log.info(f"Queued idle request of {request.idle_duration}s behind the one still being answered")
            self._queue.append(request)
            return
        self._hand_over(request)

    def _hand_over(self, request):
        self._outstanding = request
        self.reconciliation_requested.emit(request)

    # Called by the UI once the outstanding request is resolved. Hands over the next queued request, if any.
    def request_done(self):
        self._outstanding = None
        if self._queue:
            self._hand_over(self._queue.pop(0))
