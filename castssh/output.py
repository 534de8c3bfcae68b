

class CommandResult:
    """Output of one command on one host, or the error that replaced it."""

    def __init__(self, host, command, stdout="", stderr="", exit_code=None, error=None):
        self.host = host
        self.command = command
        self.stdout = stdout
        self.stderr = stderr
        self.exit_code = exit_code
        self.error = error

    @property
    def failed(self):
        return self.error is not None

    @property
    def text(self):
        if self.error is not None:
            return str(self.error)
        return self.stdout + self.stderr

    def __repr__(self):
        return "CommandResult(host=%s, command=%r, exit_code=%r, error=%r)" % (
            self.host, self.command, self.exit_code, self.error)
