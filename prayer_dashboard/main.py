import argparse
import logging
import sys
from prayer_dashboard.core.app import DashboardApp, LOG_FORMAT

def setup_basic_logging():
    """Setup basic stdout logging before config is loaded"""
    root_logger = logging.getLogger()
    if not root_logger.handlers:  # Only add handler if none exists
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(handler)
        root_logger.setLevel(logging.DEBUG)
        logging.debug("Basic logging initialized")


def main():
    setup_basic_logging()

    parser = argparse.ArgumentParser(description='Prayer times dashboard')
    parser.add_argument('--config',
                        help='Path to config file (default: ./config.yaml)')

    args = parser.parse_args()
    config_path = args.config if args.config else "config.yaml"

    app = DashboardApp(config_path=config_path)
    app.run()


if __name__ == "__main__":
    main()
