import struct
import collections

ICMPHeader = collections.namedtuple('ICMPHeader', 'type code checksum msg_id sequence')

ICMP_ECHO_REQUEST = 8
ICMP_ECHO_REPLY = 0
ICMP_OFFSET_V4 = 20
MSG_ID_OFFSET_V4 = 24
SRC_IP_OFFSET_v4 = 12
ICMP_HEADER_SIZE = 8
MAX_SEQUENCE = 65535
PAYLOAD = b'abcdefghij'

msg_id_offset = MSG_ID_OFFSET_V4
offset = ICMP_OFFSET_V4
offset_src_ip = SRC_IP_OFFSET_v4


def checksum(data: bytes) -> int:
    """ RFC 1071 internet checksum, computed over little endian words to match how we pack the header """
    if len(data) % 2:
        data += b'\x00'
    total = sum(struct.unpack(f'<{len(data) // 2}H', data))
    # fold the carries back in
    total = (total >> 16) + (total & 0xffff)
    total += total >> 16
    return ~total & 0xffff


def build(seq=1, msg_id=1) -> bytes:
    """ echo request with our message id and sequence. Header fields are packed in host (little endian) order,
    the same way the id is read back in msg_id_match """
    header = struct.pack('<BBHHH', ICMP_ECHO_REQUEST, 0, 0, msg_id, seq)
    csum = checksum(header + PAYLOAD)
    return struct.pack('<BBHHH', ICMP_ECHO_REQUEST, 0, csum, msg_id, seq) + PAYLOAD


def parse(packet: bytes) -> ICMPHeader:
    """ parse the ICMP header of a raw IPv4 packet (IP header included) """
    if len(packet) < ICMP_OFFSET_V4 + ICMP_HEADER_SIZE:
        raise ValueError(f'packet too short for an ICMP header: {len(packet)} bytes')
    icmp_header = bytes(packet[ICMP_OFFSET_V4: ICMP_OFFSET_V4 + ICMP_HEADER_SIZE])
    return ICMPHeader(*struct.unpack('<BBHHH', icmp_header))


def msg_id_match(packet: memoryview, msg_id=1, pos: int = 0) -> bool:
    return int().from_bytes(packet[msg_id_offset + pos:msg_id_offset + 2 + pos], byteorder='little') == msg_id


def src_ip_from_packet(packet: memoryview, pos: int = 0) -> int:
    return int().from_bytes(packet[offset_src_ip + pos:offset_src_ip + 4 + pos], byteorder='big')


def is_icmp_reply(packet: memoryview, pos: int = 0) -> bool:
    if len(packet) < offset + pos + ICMP_HEADER_SIZE:
        return False
    # icmp type
    return packet[offset + pos] == ICMP_ECHO_REPLY
