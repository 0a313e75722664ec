"""
Main Entry Point for Monthly Shift Roster

Wires the data manager, roster scheduler, export manager and GUI together
with logging and global error handling.
"""

import sys
import logging
import traceback
from pathlib import Path
from datetime import datetime
from tkinter import messagebox

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from shift_roster.data_manager import DataManager
from shift_roster.scheduler_logic import RosterScheduler
from shift_roster.reporting import ExportManager


def setup_logging():
    """Setup application logging"""
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    log_file = log_dir / f"shift_roster_{datetime.now().strftime('%Y%m%d')}.log"

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stdout)
        ]
    )

    return logging.getLogger(__name__)


def handle_exception(exc_type, exc_value, exc_traceback):
    """Global exception handler"""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return

    logger = logging.getLogger(__name__)
    logger.error(
        "Uncaught exception",
        exc_info=(exc_type, exc_value, exc_traceback)
    )

    try:
        messagebox.showerror("Application Error", f"An unexpected error occurred:\n\n{exc_type.__name__}: {exc_value}")
    except Exception as dialog_error:
        logger.error(f"Failed to show error dialog: {dialog_error}")


def resolve_base_path() -> Path:
    """Directory holding the data folder"""
    if getattr(sys, 'frozen', False):
        # Bundled executable (e.g. PyInstaller)
        return Path(sys.executable).parent
    return Path(__file__).parent.parent


class RosterApp:
    """Main application class"""

    def __init__(self, base_path: Path = None):
        self.logger = logging.getLogger(__name__)
        self.base_path = base_path or resolve_base_path()
        self.data_manager = None
        self.scheduler = None
        self.export_manager = None
        self.main_window = None

    def initialize(self) -> bool:
        """Initialize application components"""
        try:
            self.logger.info("Initializing Monthly Shift Roster")

            data_dir = self.base_path / "data"
            data_dir.mkdir(parents=True, exist_ok=True)
            self.logger.info(f"Persistent data directory: {data_dir}")

            self.data_manager = DataManager(str(data_dir / "roster_data.json"))
            self.scheduler = RosterScheduler(self.data_manager)
            self.export_manager = ExportManager(self.data_manager)
            self.logger.info("Components initialized")

            return True

        except Exception as e:
            self.logger.error(f"Failed to initialize application: {e}")
            self.logger.error(traceback.format_exc())
            return False

    def run(self) -> bool:
        """Run the main application"""
        try:
            if not self.initialize():
                messagebox.showerror(
                    "Initialization Error",
                    "Failed to initialize Monthly Shift Roster.\n\n"
                    "Check write permissions in the application directory and the log files."
                )
                return False

            # Imported here so the core can be used without a display
            from shift_roster.ui import MainWindow

            self.logger.info("Starting GUI application")
            self.main_window = MainWindow(
                data_manager=self.data_manager,
                scheduler=self.scheduler,
                export_manager=self.export_manager
            )
            self.main_window.mainloop()

            self.logger.info("Application closed normally")
            return True

        except Exception as e:
            self.logger.error(f"Application error: {e}")
            self.logger.error(traceback.format_exc())
            try:
                messagebox.showerror("Runtime Error", f"{type(e).__name__}: {e}")
            except Exception as dialog_error:
                self.logger.error(f"Failed to show runtime error: {dialog_error}")
            return False

        finally:
            self.cleanup()

    def cleanup(self):
        """Save roster state on exit"""
        try:
            if self.data_manager:
                self.data_manager.save_data()
                self.logger.info("Data saved successfully")
        except Exception as e:
            self.logger.error(f"Error during cleanup: {e}")


def main():
    """Main entry point"""
    sys.excepthook = handle_exception

    logger = setup_logging()
    logger.info("=" * 50)
    logger.info("Starting Monthly Shift Roster")
    logger.info("=" * 50)

    app = RosterApp()
    success = app.run()

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
