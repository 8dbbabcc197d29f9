import time


def log_progress(enable_progress_prints: bool, message: str) -> None:
    if not enable_progress_prints:
        return
    timestamp = time.strftime("%H:%M:%S")
    print(f"[{timestamp}] {message}", flush=True)
