# Filename: src/straceview/ui/colors.py
"""Colours for syscall categories and PIDs in the viewer."""

from rich.text import Text

from straceview.parser.records import CallRecord

# --- Syscall categories ---
CATEGORIES: dict[str, tuple[str, tuple[str, ...]]] = {
    "file": (
        "blue",
        (
            "read", "write", "pread", "pwrite", "pread64", "pwrite64", "readv",
            "writev", "preadv", "pwritev", "open", "openat", "openat2", "creat",
            "close", "dup", "dup2", "dup3", "lseek", "llseek", "_llseek", "fcntl",
            "ioctl", "fstat", "stat", "lstat", "fstatat", "newfstatat", "statx",
            "ftruncate", "truncate", "fsync", "fdatasync", "sync", "syncfs",
            "access", "faccessat", "faccessat2",
        ),
    ),
    "process": (
        "magenta",
        (
            "fork", "vfork", "clone", "clone3", "execve", "execveat", "exit",
            "exit_group", "wait4", "waitid", "waitpid", "kill", "tkill", "tgkill",
            "getpid", "gettid", "getppid", "getpgid", "getsid", "setpgid",
            "setsid", "ptrace", "prctl",
        ),
    ),
    "memory": (
        "cyan",
        (
            "mmap", "mmap2", "munmap", "mremap", "msync", "mprotect", "madvise",
            "mlock", "mlock2", "munlock", "mlockall", "munlockall", "brk", "sbrk",
            "memfd_create", "userfaultfd", "remap_file_pages",
        ),
    ),
    "network": (
        "green",
        (
            "socket", "bind", "listen", "accept", "accept4", "connect", "send",
            "sendto", "sendmsg", "sendmmsg", "recv", "recvfrom", "recvmsg",
            "recvmmsg", "shutdown", "getsockopt", "setsockopt", "pipe", "pipe2",
            "socketpair", "getpeername", "getsockname",
        ),
    ),
    "filesystem": (
        "yellow",
        (
            "mkdir", "mkdirat", "rmdir", "unlink", "unlinkat", "rename",
            "renameat", "renameat2", "link", "linkat", "symlink", "symlinkat",
            "readlink", "readlinkat", "chmod", "fchmod", "fchmodat", "chown",
            "fchown", "lchown", "fchownat", "chdir", "fchdir", "getcwd", "mount",
            "umount", "umount2", "chroot", "pivot_root", "getdents", "getdents64",
            "statfs", "fstatfs",
        ),
    ),
    "time": (
        "bright_blue",
        (
            "gettimeofday", "settimeofday", "clock_gettime", "clock_settime",
            "clock_getres", "clock_nanosleep", "time", "stime", "nanosleep",
            "timer_create", "timer_settime", "timer_gettime", "timer_delete",
            "timer_getoverrun", "alarm", "setitimer", "getitimer",
        ),
    ),
    "signal": (
        "bright_red",
        (
            "signal", "sigaction", "sigreturn", "rt_sigaction", "rt_sigreturn",
            "sigprocmask", "rt_sigprocmask", "sigpending", "rt_sigpending",
            "sigsuspend", "rt_sigsuspend", "signalfd", "signalfd4",
        ),
    ),
    "security": (
        "bright_magenta",
        (
            "setuid", "setgid", "setreuid", "setregid", "setresuid", "setresgid",
            "getuid", "getgid", "geteuid", "getegid", "capget", "capset",
            "setgroups", "getgroups", "seccomp", "keyctl", "add_key",
            "request_key",
        ),
    ),
    "polling": (
        "bright_green",
        (
            "select", "pselect6", "poll", "ppoll", "epoll_create",
            "epoll_create1", "epoll_ctl", "epoll_wait", "epoll_pwait",
            "inotify_init", "inotify_init1", "inotify_add_watch",
            "inotify_rm_watch", "eventfd", "eventfd2", "timerfd_create",
            "timerfd_settime", "timerfd_gettime",
        ),
    ),
    "resources": (
        "bright_yellow",
        (
            "getrlimit", "setrlimit", "prlimit64", "getrusage", "getpriority",
            "setpriority", "nice", "sched_setscheduler", "sched_getscheduler",
            "sched_setparam", "sched_getparam", "sched_setaffinity",
            "sched_getaffinity", "sched_yield",
        ),
    ),
}

SYSCALL_CATEGORY: dict[str, str] = {
    name: category for category, (_, names) in CATEGORIES.items() for name in names
}
DEFAULT_STYLE = "white"

# Distinct enough on dark and light themes
PID_PALETTE = (
    "bright_cyan",
    "bright_green",
    "bright_yellow",
    "bright_magenta",
    "bright_blue",
    "orange1",
    "spring_green1",
    "deep_pink2",
    "gold1",
    "medium_purple1",
    "turquoise2",
    "salmon1",
)


def syscall_category(name: str) -> str | None:
    return SYSCALL_CATEGORY.get(name)


def syscall_style(name: str) -> str:
    category = SYSCALL_CATEGORY.get(name)
    if category is None:
        return DEFAULT_STYLE
    return CATEGORIES[category][0]


class PidColors:
    """Hands out palette colours to PIDs in order of first appearance."""

    def __init__(self, palette: tuple[str, ...] = PID_PALETTE):
        self.palette = palette
        self._assigned: dict[int, str] = {}

    def style(self, pid: int) -> str:
        if pid not in self._assigned:
            self._assigned[pid] = self.palette[len(self._assigned) % len(self.palette)]
        return self._assigned[pid]

    def text(self, pid: int) -> Text:
        return Text(str(pid), style=self.style(pid))


def event_text(record: CallRecord) -> Text:
    """The event column: coloured syscall name, signal or exit marker."""
    if record.signal is not None:
        return Text(f"--- {record.signal.name} ---", style="bold bright_red")
    if record.exit is not None:
        style = "bold red" if record.exit.killed else "bold"
        return Text(f"+++ {record.exit} +++", style=style)
    return Text(record.name, style=syscall_style(record.name))


def result_text(record: CallRecord) -> Text:
    if record.is_unfinished:
        return Text("<unfinished>", style="bold yellow")
    if record.kind != "syscall":
        return Text("")
    if record.error is not None:
        return Text(f"{record.return_value} {record.error.code}", style="red")
    return Text(record.return_value or "")
