# utils/logger.py

VERBOSE = False


def set_verbose(enabled):
    """
    Enable or disable debug output.
    Включает или выключает отладочный вывод.
    """
    global VERBOSE
    VERBOSE = bool(enabled)


def log(text, level="info"):
    if level == "debug" and not VERBOSE:
        return
    color = {
        "info": "\033[94m",    # Синий
        "warn": "\033[93m",    # Желтый
        "error": "\033[91m",   # Красный
        "ok": "\033[92m",      # Зеленый
        "step": "\033[95m",    # Пурпурный
        "debug": "\033[90m",   # Серый
    }.get(level, "\033[0m")
    print(f"{color}[{level.upper()}] {text}\033[0m")
