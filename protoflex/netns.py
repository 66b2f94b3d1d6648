"""Network namespace and WireGuard setup through system commands."""

import logging
import subprocess
from contextlib import contextmanager

logger = logging.getLogger(__name__)

_NAMESPACE_SUFFIX = "_namespace"
_DNS_SERVER = "1.1.1.1"


class CommandError(RuntimeError):
    """Raised when a system command fails or a setup step cannot be completed."""

    def __init__(self, message, *, output="", returncode=None):
        super().__init__(message)
        self.output = output
        self.returncode = returncode


def run_command(command):
    """Run ``command`` through bash with sudo and return its combined output."""
    argv = ["bash", "-c", "sudo " + command]
    logger.info("Running command: %s", " ".join(argv))
    try:
        completed = subprocess.run(
            argv,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise CommandError(f"command failed: {exc}") from exc
    output = completed.stdout or ""
    if completed.returncode != 0:
        raise CommandError(
            f"command failed: {output}, exit status {completed.returncode}",
            output=output,
            returncode=completed.returncode,
        )
    return output


def is_subnet_unused(subnet):
    """Return True when no route exists for ``subnet``."""
    try:
        output = run_command(f"ip route show {subnet}")
    except CommandError as exc:
        raise CommandError(f"failed to run command: {exc}") from exc
    return output.strip() == ""


def find_unused_subnet():
    """Return the first 192.168.x.0/24 subnet (x from 2 to 254) without a route."""
    for third_octet in range(2, 255):
        subnet = f"192.168.{third_octet}.0/24"
        try:
            available = is_subnet_unused(subnet)
        except CommandError as exc:
            raise CommandError(f"error checking subnet: {exc}") from exc
        if available:
            return subnet
    raise LookupError("no unused subnets found")


def detect_ext_interface():
    """Return the name of the interface carrying the default route."""
    try:
        output = run_command("ip route | grep default | awk '{print $5}'")
    except CommandError as exc:
        raise CommandError(f"failed to detect external interface: {exc}") from exc
    return output.strip()


def split_cidr_host_ns(cidr):
    """Return the host (.1) and namespace (.2) addresses of an IPv4 CIDR, mask kept."""
    parts = cidr.split("/")
    if len(parts) != 2:
        raise ValueError(f"invalid CIDR format: {cidr}")
    ip_part, mask = parts
    octets = ip_part.split(".")
    if len(octets) != 4:
        raise ValueError(f"not an IPv4 address: {ip_part}")
    prefix = ".".join(octets[:3])
    return f"{prefix}.1/{mask}", f"{prefix}.2/{mask}"


@contextmanager
def _step(description):
    try:
        yield
    except (CommandError, LookupError, ValueError) as exc:
        raise CommandError(f"{description}: {exc}") from exc


def _succeeds(command):
    try:
        run_command(command)
    except CommandError:
        return False
    return True


def setup_namespace(interface_name):
    """Create a namespace with a veth pair, NAT and DNS, then bring up WireGuard in it."""
    with _step("failed to detect external interface"):
        ext_interface = detect_ext_interface()

    with _step("failed to find unused subnet"):
        subnet = find_unused_subnet()
    logger.info("Using subnet: %s", subnet)

    with _step("failed to split CIDR and make host namespace"):
        host_ip, ns_ip = split_cidr_host_ns(subnet)

    namespace = interface_name + _NAMESPACE_SUFFIX
    if _succeeds(f"ip netns list | grep -w {namespace}"):
        logger.info("Namespace %s already exists, skipping creation.", namespace)
    else:
        with _step("failed to create namespace"):
            run_command(f"ip netns add {namespace}")

    veth0 = f"veth_{interface_name}_0"
    veth1 = f"veth_{interface_name}_1"
    if _succeeds(f"ip link show | grep -w {veth0}"):
        logger.info("veth pair %s and %s already exists, skipping creation.", veth0, veth1)
    else:
        with _step("failed to create veth pair"):
            run_command(f"ip link add {veth0} type veth peer name {veth1}")

    with _step("failed to assign veth to namespace"):
        run_command(f"ip link set {veth1} netns {namespace}")

    with _step("failed to configure host veth"):
        run_command(f"sudo ip addr add {host_ip} dev {veth0} && sudo ip link set {veth0} up")

    with _step("failed to configure namespace veth"):
        run_command(
            f'sudo ip netns exec {namespace} bash -c "ip addr add {ns_ip} dev {veth1} '
            f'&& sudo ip link set {veth1} up && sudo ip link set lo up"'
        )

    gateway = host_ip.split("/")[0]
    with _step("failed to set default route"):
        run_command(f"ip netns exec {namespace} ip route add default via {gateway} dev {veth1}")

    with _step("failed to configure DNS"):
        run_command(
            f"echo 'nameserver {_DNS_SERVER}' | sudo tee /etc/netns/{namespace}/resolv.conf"
        )

    try:
        run_command("sudo sysctl -w net.ipv4.ip_forward=1")
    except CommandError as exc:
        logger.warning("Failed to enable ip_forward: %s", exc)

    with _step("failed to set up iptables"):
        run_command(
            "sudo iptables -A FORWARD -m conntrack --ctstate ESTABLISHED,RELATED -j ACCEPT && "
            f"sudo iptables -A FORWARD -i {veth0} -j ACCEPT && "
            f"sudo iptables -t nat -A POSTROUTING -s {subnet} -o {ext_interface} -j MASQUERADE"
        )

    try:
        run_command(f"sudo ip netns exec {namespace} ip link del {interface_name} 2>/dev/null")
    except CommandError as exc:
        logger.info("Attempt to delete existing %s returned: %s", interface_name, exc)

    with _step("failed to bring up WireGuard"):
        run_command(f"sudo ip netns exec {namespace} wg-quick up {interface_name}")

    logger.info(
        "Namespace %s with veth pair %s/%s and WireGuard (%s) configured using subnet %s.",
        namespace,
        veth0,
        veth1,
        interface_name,
        subnet,
    )