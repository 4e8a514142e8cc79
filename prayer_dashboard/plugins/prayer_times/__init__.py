"""Prayer Times plugin: monthly calendar, next prayer countdown and day navigation."""


def register_components(plugin_manager):
    from .prayer_component import PrayerTimesComponent

    plugin_manager.register_component(PrayerTimesComponent)
