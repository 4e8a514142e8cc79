import tkinter as tk
import tkinter.messagebox as messagebox
from typing import Dict, Any, List, Optional
import logging
import os
import sys
from .task_manager import TaskManager
from .component_base import DashboardComponent
from .plugin_manager import PluginManager
from .config import Config


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'


class DashboardApp:
    def __init__(self, config_path: Optional[str] = None):
        self.root = tk.Tk()
        self.logger = logging.getLogger(self.__class__.__name__)

        self.config = Config(root=self.root, config_path=config_path)
        self.config.register_change_callback(self.handle_config_change)

        self._setup_logging()
        self._configure_window()

        bg_color = self.config.data["window"].get("background_color")
        self.main_container = tk.Frame(self.root, bg=bg_color)
        self.main_container.pack(fill=tk.BOTH, expand=True)

        # Initialize database (before components so tables exist)
        from .db import init_db
        init_db(self.config.data)

        self.plugin_manager = PluginManager()
        self.task_manager = TaskManager()

        self.components: List[DashboardComponent] = []
        self.initialize_components()

        # Start API server if enabled (api.enabled in config)
        try:
            from prayer_dashboard.api import run_api_server
            run_api_server(self)
        except Exception as e:
            self.logger.warning(f"API server not started: {e}")

    def _setup_logging(self):
        """Configure logging to write to both file and stdout"""
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
        root_logger.setLevel(getattr(logging, str(self.config.data["logging"]["level"]).upper(), logging.INFO))

        formatter = logging.Formatter(LOG_FORMAT)

        log_file = self.config.data["logging"].get("file")
        if log_file:
            os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        logging.info("Prayer dashboard starting...")

    def _configure_window(self) -> None:
        """Configure window size and appearance"""
        window_config = self.config.data["window"]

        self.root.title("Prayer Times")

        if window_config.get("borderless"):
            self.root.overrideredirect(True)
            self.root.attributes('-topmost', True)
            # Escape exits when there is no title bar
            self.root.bind('<Escape>', lambda e: self.root.quit())

        if window_config.get("auto_size"):
            screen_width = self.root.winfo_screenwidth()
            screen_height = self.root.winfo_screenheight()
            margin = int(min(screen_width, screen_height) * window_config.get("margin_percent", 5) / 100)
            self.root.geometry(f"{screen_width - 2 * margin}x{screen_height - 2 * margin}+{margin}+{margin}")
        else:
            self.root.geometry(f"{window_config['width']}x{window_config['height']}")

        if window_config.get("fullscreen"):
            self.root.attributes('-fullscreen', True)

        bg_color = window_config.get("background_color")
        if bg_color:
            self.root.configure(bg=bg_color)

    def initialize_components(self):
        try:
            self.plugin_manager.discover_plugins()

            for component_name in self.plugin_manager.components:
                component_config = self.config.get_component_config(component_name)
                component = self.plugin_manager.create_component(self, component_name, component_config)
                if component:
                    logging.debug(f"Initializing component: {component_name}")
                    component.initialize(self.main_container)
                    self.components.append(component)
                else:
                    logging.debug(f"Skipping disabled component: {component_name}")

        except Exception as e:
            logging.error(f"Error initializing components: {e}")
            messagebox.showerror("Error", f"Failed to initialize components: {e}")
            logging.exception(e)

    def handle_config_change(self, new_config: Dict[str, Any]) -> None:
        """Push reloaded component settings to running components"""
        self.logger.info("Handling config change")
        try:
            for component in self.components:
                if component.name in new_config.get('components', {}):
                    component.update_config(new_config['components'][component.name])
        except Exception as e:
            self.logger.error(f"Error handling config change: {e}", exc_info=True)

    def _drain_result_queue(self) -> None:
        """Drain background task results and notify components (called from main thread)."""
        try:
            while not self.task_manager.result_queue.empty():
                task_name, result = self.task_manager.result_queue.get_nowait()
                logging.debug(f"Processing task result for {task_name}: {result}")
                for component in self.components:
                    if component.name == task_name:
                        component.handle_background_result(result)
                        break
        except Exception as e:
            logging.error(f"Error draining result queue: {e}")
        self.root.after(self.config.data.get("update_interval", 1000), self._drain_result_queue)

    def run(self):
        try:
            self.root.after(1000, self._drain_result_queue)
            self.root.mainloop()
        finally:
            for component in self.components:
                component.destroy()
            self.task_manager.stop()
            self.config.cleanup()
