import os
from typing import Optional


def find_file_by_suffix(directory: str, *suffixes: str) -> Optional[str]:
    try:
        for filename in sorted(os.listdir(directory)):
            for suffix in suffixes:
                if filename.endswith(suffix):
                    return os.path.join(directory, filename)
    except OSError:
        pass
    return None


def find_file_exact(directory: str, candidates: list[str]) -> Optional[str]:
    for name in candidates:
        path = os.path.join(directory, name)
        if os.path.exists(path):
            return path
    return None


def find_whisper_files(model_path: str) -> dict:
    return {
        "encoder": find_file_by_suffix(
            model_path, "-encoder.int8.onnx", "-encoder.onnx"
        ),
        "decoder": find_file_by_suffix(
            model_path, "-decoder.int8.onnx", "-decoder.onnx"
        ),
        "tokens": find_file_by_suffix(model_path, "-tokens.txt", "tokens.txt"),
    }


def find_transducer_files(model_path: str) -> dict:
    return {
        "encoder": find_file_exact(
            model_path, ["encoder.int8.onnx", "encoder.onnx", "encoder.fp16.onnx"]
        ),
        "decoder": find_file_exact(
            model_path, ["decoder.int8.onnx", "decoder.onnx", "decoder.fp16.onnx"]
        ),
        "joiner": find_file_exact(
            model_path, ["joiner.int8.onnx", "joiner.onnx", "joiner.fp16.onnx"]
        ),
        "tokens": find_file_exact(model_path, ["tokens.txt"]),
    }


def detect_model_type(model_path: str) -> Optional[str]:
    """Return "transducer", "whisper", or None if the directory holds neither."""
    if all(find_transducer_files(model_path).values()):
        return "transducer"
    if all(find_whisper_files(model_path).values()):
        return "whisper"
    return None


def missing_files(files: dict) -> list[str]:
    return [name for name, path in files.items() if not path]
