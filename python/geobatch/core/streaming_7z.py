import py7zr


class StreamingPy7zIO(py7zr.io.Py7zIO):
    def __init__(self, filename, sink, updater=None):
        self.filename = filename
        self.sink = sink
        self._buffer = b""
        self.length = 0
        self.updater = updater

    def extract_lines(self):
        lines = []
        while True:
            newline_index = self._buffer.find(b"\n")
            if newline_index == -1:
                break

            line = self._buffer[: newline_index + 1]
            self._buffer = self._buffer[newline_index + 1 :]

            lines.append(line.decode("utf-8").rstrip("\n"))

        return lines

    def process_line(self, line):
        self.sink.process(line)

    def write(self, data):
        self.length += len(data)

        self._buffer += data

        lines = self.extract_lines()
        for line in lines:
            self.process_line(line)

        if self.updater:
            self.updater.update_size(len(data))
            self.updater.update_other_info(self.sink)

    def read(self, size=None):
        return b""

    def seek(self, offset, whence=0) -> int:
        return offset

    def flush(self):
        pass

    def size(self):
        return self.length

    def flush_last_line(self):
        if self._buffer:
            line = self._buffer
            self._buffer = b""
            self.process_line(line.decode("utf-8"))


class StreamingWriterFactory(py7zr.io.WriterFactory):
    def __init__(self, sink, status_updater):
        self.streaming_io = None
        self.sink = sink
        self.status_updater = status_updater

    def create(self, filename):
        self.streaming_io = StreamingPy7zIO(filename, self.sink, self.status_updater)
        return self.streaming_io
