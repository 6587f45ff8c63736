"""Text width, item text, exit hooks, atomic flags, event boxes and shell execution helpers."""