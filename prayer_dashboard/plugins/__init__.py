"""Dashboard plugins. Each subpackage exposes register_components(plugin_manager)."""
