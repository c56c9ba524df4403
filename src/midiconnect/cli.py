"""
Logs the traffic from every MIDI source until interrupted.
"""
import argparse
import logging
import time

from midiconnect import midi
from midiconnect.events import EventForwarder
from midiconnect.monitor import Monitor
from midiconnect.transport.mido_transport import MidoTransport

logger = logging.getLogger(__name__)


class LoggingMonitor(Monitor):
    """ Logs the connection changes. """

    def did_connect_to(self, unique_id):
        logger.info("connected to %s" % unique_id)

    def did_disconnect_from(self, unique_id):
        logger.info("disconnected from %s" % unique_id)

    def did_update_connections(self, connected, disappeared):
        logger.info("connections updated: %d added, %d removed" % (len(connected), len(disappeared)))


def log_event(event):
    logger.info("%s" % event)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--backend", help="mido backend module, e.g. mido.backends.rtmidi")
    parser.add_argument("--channel", type=int, help="only log this channel (0-15), -1 for all")
    parser.add_argument("--group", type=int, help="only log this group (0-15), -1 for all")
    parser.add_argument("--include-through", action="store_true", help="also connect to through ports")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    return parser


def run(facade, interval, sleep=time.sleep, iterations=None):
    """ Polls the facade until interrupted, or for the given number of iterations. """
    facade.start()
    try:
        count = 0
        while iterations is None or count < iterations:
            facade.update()
            sleep(interval)
            count += 1
    except KeyboardInterrupt:
        logger.info("interrupted")
    finally:
        facade.stop()


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    midi.configure()
    receiver = EventForwarder(log_event,
                              channel=args.channel if args.channel is not None else midi.channel,
                              group=args.group if args.group is not None else midi.group)
    transport = MidoTransport(backend=args.backend, exclude_through=not args.include_through)
    facade = midi.Midi(transport, receiver, LoggingMonitor())
    run(facade, midi.poll_interval)
    return 0
