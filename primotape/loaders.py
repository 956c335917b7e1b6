"""Machine code of the turbo loaders that are written in front of a payload."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class LoaderImage:
    """A loader program: its name, addresses and code (mutable for relocation)."""

    name: str
    run_address: int
    load_address: int
    data: bytearray

    @property
    def size(self) -> int:
        """Number of code bytes."""
        return len(self.data)

    @property
    def first_free(self) -> int:
        """Address following the last byte of the loader."""
        return self.load_address + len(self.data)


_TURBO_CODE = bytes.fromhex(
    "06800E00DB1FE60420FADB1FE60420F4"
    "DB1F0CE60428F9DB1FE60428F3DB1F0D"
    "E60420F9DB1FE60420F3CB11CB1830D2"
    "C90C4C6F6164206572726F7221202856"
    "6F6C756D653F2900213645CD033DF33A"
    "3B40E67FD31FD92A3940EB132A394036"
    "FFD921004411 1C4101310 0EDB0110100".replace(" ", "")
    + "210000ED5A28FCDB1FE60420F6DB1FE6"
    "0420F0210000ED5A28E9DB1FE60428F6"
    "DB1FE60428F0210000160ECD1C414809"
    "1520F8CD1C4178BD205ACD1C4178BC20"
    "53CD1C41052855CD1C4168CD1C4160CD"
    "1C4158CD1C4150783CD94F0600EDB0D9"
    "CD1C4170231B7ABB2005D936002BD9B3"
    "20EECD1C41D92A3940EB132A394036FF"
    "D9052 8BD052823052822CD1C4158CD1C".replace(" ", "")
    + "4150D5C9213144CD033D180ECD1C4158"
    "CD1C41502A39401918A5060122F940FB"
    "3A3B40D31F05CA7E19211E1DE52AA440"
    "AFFE00C3A31E0C020D20202020202020"
    "2020202020202020200D697320747572"
    "626F206C6F6164696E670100FF"
)

_TURBO5_CODE = bytes.fromhex(
    "06800E00DB1FE60420FA00000000DB1F"
    "0CE60428F93E0391CB1830E6C90C4C6F"
    "6164206572726F7221000C020D202020"
    "202020202020202020202020200D6973"
    "20747572626F206C6F6164696E670100"
    "212A44CD033DF33A3B40E67FD31FD92A"
    "3940EB132A394036FFD9210044111C41"
    "011D00EDB0210000160ECD1C41480915"
    "20F8CD1C4178BD2007CD1C4178BC2808"
    "211D44CD033D187ECD1C4105286ACD1C"
    "4168CD1C4160CD1C4158CD1C415078D9"
    "CB3FCB3FCB3F28054F0600EDB00609D9"
    "083E0008CD1C41088008702 31B7ABB20".replace(" ", "")
    + "0AD9052003 2B0608CB26D9B320E6CD1C".replace(" ", "")
    + "4108B820AB08CD1C41D92A3940EB132A"
    "394036FFD90528A005281B05281ACD1C"
    "4158CD1C4150D5C9CD1C4158CD1C4150"
    "2A394019189006 0122F940FB3A3B40D3".replace(" ", "")
    + "1F05CA7E19211E1DE52AA440AFFE00C3"
    "A31EFF"
)


def turbo_loader() -> LoaderImage:
    """A fresh copy of the standard turbo loader."""
    return LoaderImage("wavloader", 0x4448, 0x4400, bytearray(_TURBO_CODE))


def turbo5_loader() -> LoaderImage:
    """A fresh copy of the turbo loader for machines clocked at 2.5 MHz."""
    return LoaderImage("wavloader", 0x4450, 0x4400, bytearray(_TURBO5_CODE))