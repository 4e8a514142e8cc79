from abc import ABC, abstractmethod
import tkinter as tk
from typing import Optional, Dict, Any
import logging

# Window size the base font sizes are designed for
BASE_WINDOW_WIDTH = 480
BASE_WINDOW_HEIGHT = 720

BASE_FONTS = {
    'display': 36,
    'title': 22,
    'heading': 16,
    'body': 12,
    'small': 10,
}

BASE_PADDING = {
    'small': 4,
    'medium': 8,
    'large': 14,
}


class DashboardComponent(ABC):
    def __init__(self, app, config: Dict[str, Any]):
        self.frame: Optional[tk.Frame] = None
        self.config = config
        self.app = app
        self.logger = logging.getLogger(self.name)
        self._latest_result = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name of the component"""
        pass

    @property
    def headline(self) -> str:
        """Return the display name for the component"""
        return self.config.get("headline", self.name)

    def _scale(self) -> float:
        """Scale factor from the configured window size, clamped to 0.5x-2x"""
        window = self.app.config.data.get("window", {}) if self.app else {}
        width_scale = window.get("width", BASE_WINDOW_WIDTH) / BASE_WINDOW_WIDTH
        height_scale = window.get("height", BASE_WINDOW_HEIGHT) / BASE_WINDOW_HEIGHT
        return max(0.5, min(2.0, (width_scale + height_scale) / 2))

    def get_fonts(self) -> Dict[str, int]:
        """Font sizes for this component, config 'fonts' entries override the base sizes"""
        scale = self._scale()
        fonts = dict(BASE_FONTS)
        fonts.update({k: v for k, v in self.config.get('fonts', {}).items() if isinstance(v, (int, float))})
        return {key: max(6, int(size * scale)) for key, size in fonts.items()}

    def get_colors(self) -> Dict[str, str]:
        colors = {
            'text': '#1C6758',
            'background': '#F8F0E3',
            'accent': '#1C6758',
            'accent_text': '#F8F0E3',
            'error': '#B00020',
            'muted': '#666666',
        }
        colors.update(self.config.get('colors', {}))
        return colors

    def get_padding(self, size: str = 'medium') -> int:
        return max(2, int(BASE_PADDING.get(size, BASE_PADDING['medium']) * self._scale()))

    @abstractmethod
    def initialize(self, parent: tk.Frame) -> None:
        """Initialize the component with a parent frame"""
        self.frame = tk.Frame(parent, bg=self.get_colors()['background'])
        padding = self.get_padding('medium')
        self.frame.pack(pady=padding, padx=padding, fill=tk.BOTH, expand=True)

    def create_label(self, parent, text="", font_size='body', bold=False, color=None, **kwargs) -> tk.Label:
        """Create a label using a named font size and the component colors"""
        fonts = self.get_fonts()
        colors = self.get_colors()
        size = fonts.get(font_size, fonts['body']) if isinstance(font_size, str) else font_size
        family = kwargs.pop('font_family', self.config.get('font_family', 'Arial'))
        font = (family, size, "bold") if bold else (family, size)
        kwargs.setdefault('fg', color or colors['text'])
        kwargs.setdefault('bg', colors['background'])
        return tk.Label(parent, text=text, font=font, **kwargs)

    @abstractmethod
    def update(self) -> None:
        """Update component display with latest result"""
        pass

    def handle_background_result(self, result: Any) -> None:
        """Store result and trigger update"""
        self._latest_result = result

    def destroy(self) -> None:
        """Clean up resources"""
        try:
            if self.frame and self.frame.winfo_exists():
                self.frame.destroy()
            self.frame = None
            self.logger.debug(f"Component {self.name} destroyed")
        except tk.TclError as e:
            self.logger.error(f"Error destroying component {self.name}: {e}")

    def update_config(self, new_config: Dict[str, Any]) -> None:
        """Update component configuration"""
        self.config = new_config
        self.logger.info(f"Updated config for {self.name}")
        self._handle_config_update()

    def _handle_config_update(self) -> None:
        """Handle configuration updates"""
        try:
            self.logger.debug(f"Handling config update for {self.name}")
            if hasattr(self, 'update_from_config'):
                self.update_from_config()
            else:
                self.update()
        except Exception as e:
            self.logger.error(f"Error handling config update for {self.name}: {e}", exc_info=True)
