# This file is part of the TileView project.
# Copyright (C) 2024 TileView contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Control thread event queue.

Tile state is only changed on the control thread. Loader threads and timers
hand their results to the control thread with `Dispatcher.invoke`; the
control thread runs them with `Dispatcher.process_events`.
"""
import queue
import threading



class Dispatcher(object):
    def __init__(self):
        self.event_queue = queue.Queue()

    def invoke(self, func, *args):
        """
        Queue ``func(*args)`` for the control thread. Safe to call from any
        thread.
        """
        self.event_queue.put((func, args))

    def process_events(self, timeout=None):
        """
        Run all queued calls on the calling thread.

        Waits up to `timeout` seconds for the first call if the queue is
        empty (``None`` returns immediately). Returns the number of calls.
        """
        count = 0
        try:
            if timeout is None:
                func, args = self.event_queue.get(block=False)
            else:
                func, args = self.event_queue.get(timeout=timeout)
        except queue.Empty:
            return count

        while True:
            count += 1
            func(*args)
            try:
                func, args = self.event_queue.get(block=False)
            except queue.Empty:
                return count

    @property
    def has_events(self):
        return not self.event_queue.empty()

    def call_later(self, delay, func, *args):
        """
        Run ``func(*args)`` on the control thread after `delay` seconds.
        Returns the started `DelayedCall`.
        """
        call = DelayedCall(self, delay, func, *args)
        call.start()
        return call


class DelayedCall(object):
    """
    Restartable one-shot timer whose callback is run through a `Dispatcher`.
    A callback that was already queued when the call was cancelled or
    restarted is dropped.
    """
    def __init__(self, dispatcher, delay, func, *args):
        self.dispatcher = dispatcher
        self.delay = delay
        self.func = func
        self.args = args
        self._lock = threading.Lock()
        self._timer = None
        self._generation = 0

    @property
    def active(self):
        with self._lock:
            return self._timer is not None

    def start(self):
        """
        Start the timer. A running timer is restarted from the beginning.
        """
        with self._lock:
            self._cancel_timer()
            generation = self._generation
            self._timer = threading.Timer(self.delay, self.dispatcher.invoke,
                (self._fire, generation))
            self._timer.daemon = True
            self._timer.start()

    restart = start

    def cancel(self):
        with self._lock:
            self._cancel_timer()

    def _cancel_timer(self):
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, generation):
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None
        self.func(*self.args)
