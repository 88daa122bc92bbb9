import argparse
import signal
import sys

from PyQt5.QtCore import QCoreApplication, QTimer

from lab_power.bridge import EventBridge
from lab_power.config_manager import ConfigManager
from lab_power.constants import CONFIG_FILE
from lab_power.controllers import LabPowerController
from lab_power.events import REASON_OPEN_FAILED
from lab_power.logging_utils import setup_logging


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Lab Power - console monitor")
    parser.add_argument("--config", default=CONFIG_FILE, help=f"INI file (default: {CONFIG_FILE})")
    parser.add_argument("--list-ports", action="store_true", help="Print serial ports and exit")
    parser.add_argument("--port", help="Serial port of the supply, e.g. COM3 or /dev/ttyUSB0")
    parser.add_argument("--voltage", type=float, help="Voltage setpoint (V)")
    parser.add_argument("--current", type=float, help="Current setpoint (A)")
    parser.add_argument("--output", choices=("on", "off"), help="Switch the output")
    parser.add_argument("--duration", type=float, default=0.0,
                        help="Seconds to monitor before disconnecting (default: until Ctrl+C)")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    settings = ConfigManager(args.config).load_settings()
    logger = setup_logging(settings)

    controller = LabPowerController(settings)
    if args.list_ports:
        for name in controller.list_ports():
            print(name)
        return 0
    if not args.port:
        logger.error("No --port given (use --list-ports to see what is available)")
        return 2

    app = QCoreApplication(sys.argv[:1])
    bridge = EventBridge(controller)
    exit_code = {"value": 0}

    def on_reading(quantity, value):
        unit = "V" if quantity == "voltage" else "A"
        logger.info(f"{quantity:>7}: {value:.3f} {unit}")

    def on_setpoint(quantity, value):
        unit = "V" if quantity == "voltage" else "A"
        logger.info(f"{quantity:>7} setpoint: {value:.3f} {unit}")

    def on_connection(up):
        if not up:
            return
        if args.voltage is not None:
            logger.info(controller.set_voltage(args.voltage)[1])
        if args.current is not None:
            logger.info(controller.set_current(args.current)[1])
        if args.output is not None:
            logger.info(controller.set_output(args.output == "on")[1])

    def on_disconnected(reason):
        if reason == REASON_OPEN_FAILED:
            exit_code["value"] = 1
        bridge.stop()
        app.quit()

    bridge.reading_updated.connect(on_reading)
    bridge.setpoint_updated.connect(on_setpoint)
    bridge.connection_changed.connect(on_connection)
    bridge.disconnected.connect(on_disconnected)

    ok, msg = controller.connect(args.port)
    logger.info(msg)
    if not ok:
        return 1
    bridge.start()

    if args.duration > 0:
        QTimer.singleShot(int(args.duration * 1000), controller.disconnect)

    # Ctrl+C: let Qt return to Python now and then so the handler can run
    signal.signal(signal.SIGINT, lambda *_: controller.disconnect())
    keepalive = QTimer()
    keepalive.start(200)
    keepalive.timeout.connect(lambda: None)

    app.exec_()
    controller.wait_disconnected(2.0)
    return exit_code["value"]


if __name__ == "__main__":
    sys.exit(main())
