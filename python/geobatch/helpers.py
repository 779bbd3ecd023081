import logging


def readable_size(size_bytes):
    if size_bytes == 0:
        return "0.00 KB"
    size_name = ("B", "KB", "MB", "GB", "TB")
    i = int(min(len(size_name) - 1, (size_bytes.bit_length() - 1) // 10))
    p = 1 << (i * 10)
    s = round(size_bytes / p, 2)
    return f"{s} {size_name[i]}"


def get_base_name(input_path):
    name = input_path.name
    for suffix in (".7z.001", ".7z", ".geojsonl", ".geojsonseq", ".ndjson"):
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return input_path.stem


def get_geojsonl_file_info(archive):
    geojsonl_files_infos = [f for f in archive.files if f.filename.endswith('.geojsonl')]

    if not geojsonl_files_infos:
        logging.error("No .geojsonl file found in the archive.")
        return None

    if len(geojsonl_files_infos) > 1:
        logging.warning(f"Multiple .geojsonl files found, using the first one: {geojsonl_files_infos[0].filename}")

    return geojsonl_files_infos[0]
