from errtrace.print.printer import Printer as Printer
from errtrace.print.printable import Printable as Printable
